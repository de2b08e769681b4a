# coursecart/services/notification_service.py
from kombu.exceptions import OperationalError as BrokerError

from coursecart.celery_worker import celery_app
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania.
    Wywolywany PO commicie - blad brokera nie cofa zmiany statusu platnosci.
    """

    @staticmethod
    def _enqueue(task, *args):
        try:
            task.delay(*args)
        except BrokerError as e:
            logger.warning(f"Could not enqueue {task.name}{args}: {e}")

    def receipt_received(self, attempt_id: int, tracking_code: str):
        """Nowy paragon w kolejce do sprawdzenia przez admina."""
        self._enqueue(send_receipt_received_task, attempt_id, tracking_code)

    def payment_decided(self, user_id: int, attempt_id: int, tracking_code: str, decision: str):
        """Approved / Rejected / Refunded."""
        self._enqueue(send_payment_decision_task, user_id, attempt_id, tracking_code, decision)


@celery_app.task(name="coursecart.services.notification_service.send_receipt_received_task")
def send_receipt_received_task(attempt_id: int, tracking_code: str):
    logger.info(f"[NOTIFICATION] Admins: receipt for payment {tracking_code} (#{attempt_id}) awaits review")
    return {"attempt_id": attempt_id, "status": "sent"}


@celery_app.task(name="coursecart.services.notification_service.send_payment_decision_task")
def send_payment_decision_task(user_id: int, attempt_id: int, tracking_code: str, decision: str):
    """
    Celery task - w prawdziwym systemie wyslalby email/SMS.
    Teraz tylko loguje.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: payment {tracking_code} (#{attempt_id}) {decision}")
    return {"user_id": user_id, "attempt_id": attempt_id, "decision": decision, "status": "sent"}
