# coursecart/services/payment_service.py
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict

from sqlalchemy.orm import Session

from coursecart.data.models.payment_attempt import PaymentAttemptModel
from coursecart.data.types import utcnow
from coursecart.domain.errors import (
    AccessDenied,
    IncompleteReceipt,
    OrderNotFound,
    OrderNotPayable,
    PaymentAttemptExpired,
    PaymentAttemptNotFound,
    storage_errors,
)
from coursecart.domain.identifiers import new_tracking_code
from coursecart.domain.statuses import OrderStatus, PaymentEvent, PaymentMethod, PaymentStatus
from coursecart.repos.order_repo import OrderRepo
from coursecart.repos.payment_repo import PaymentRepo
from coursecart.services.notification_service import NotificationService
from coursecart.services.payment_transitions import PaymentTransitions, attempt_view
from coursecart.utils.settings import ADMIN_REVIEW_WINDOW_SECONDS, PAYMENT_WINDOW_SECONDS
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReceiptUpload:
    """Paragon juz zapisany przez warstwe uploadu - tu tylko referencja i metadane."""

    image_url: str | None
    file_name: str | None
    uploaded_at: datetime | None

    def ensure_complete(self):
        missing = [
            name
            for name, value in (
                ("image_url", self.image_url),
                ("file_name", self.file_name),
                ("uploaded_at", self.uploaded_at),
            )
            if not value or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise IncompleteReceipt(f"Receipt upload is missing: {', '.join(missing)}", missing=missing)


class PaymentService:
    """
    Use case'y uzytkownika dla platnosci recznej:
    start proby, potwierdzenie przelewu, upload paragonu.
    Plus sweep wygaslych prob (wolany z taska celery).
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.db = db
        self.repo = PaymentRepo(db)
        self.order_repo = OrderRepo(db)
        self.transitions = PaymentTransitions(db)
        self.notification_service = notification_service or NotificationService()

    def start_payment(self, user_id: int, order_id: int) -> Dict[str, Any]:
        with storage_errors():
            try:
                now = utcnow()
                order = self.order_repo.get_order_for_update(order_id)
                if not order:
                    raise OrderNotFound(f"Order {order_id} does not exist")
                if order.user_id != user_id:
                    raise AccessDenied("Order belongs to another user")

                live = self.repo.get_live_attempt(order.id)
                if live and self.transitions.expire_if_due(live, now):
                    live = None
                    self.db.refresh(order)

                if live:
                    # jedna zywa proba na zamowienie - zwracamy istniejaca
                    self.db.commit()
                    logger.info(f"Order {order.id} already has live payment {live.id}")
                    return attempt_view(live)

                if order.order_status != OrderStatus.PENDING_PAYMENT:
                    raise OrderNotPayable(f"Order {order.id} is {order.status}", status=order.status)

                attempt = PaymentAttemptModel(
                    order_id=order.id,
                    user_id=user_id,
                    amount=order.total,
                    method=PaymentMethod.MANUAL.value,
                    status=PaymentStatus.DRAFT.value,
                    tracking_code=new_tracking_code(),
                    expires_at=now + timedelta(seconds=PAYMENT_WINDOW_SECONDS),
                    created_at=now,
                )
                self.repo.create_attempt(attempt)
                self.transitions.apply(attempt, PaymentEvent.SUBMIT, now)

                self.db.commit()
                return attempt_view(attempt)

            except Exception:
                self.db.rollback()
                raise

    def begin_receipt_upload(self, user_id: int, attempt_id: int) -> Dict[str, Any]:
        """Uzytkownik zobaczyl dane do przelewu i zaraz wgra paragon."""
        with storage_errors():
            try:
                now = utcnow()
                attempt = self._get_owned_live_attempt(user_id, attempt_id, now)
                if attempt.payment_status == PaymentStatus.AWAITING_RECEIPT_UPLOAD:
                    self.db.commit()
                    return attempt_view(attempt)

                self.transitions.apply(attempt, PaymentEvent.BEGIN_RECEIPT_UPLOAD, now)
                self.db.commit()
                return attempt_view(attempt)

            except Exception:
                self.db.rollback()
                raise

    def upload_receipt(self, user_id: int, attempt_id: int, receipt: ReceiptUpload) -> Dict[str, Any]:
        receipt.ensure_complete()

        with storage_errors():
            try:
                now = utcnow()
                attempt = self._get_owned_live_attempt(user_id, attempt_id, now)

                # obraz + nazwa + czas zawsze razem
                applied = self.transitions.apply(
                    attempt,
                    PaymentEvent.UPLOAD_RECEIPT,
                    now,
                    receipt_image_url=receipt.image_url,
                    receipt_file_name=receipt.file_name,
                    receipt_uploaded_at=receipt.uploaded_at,
                    expires_at=now + timedelta(seconds=ADMIN_REVIEW_WINDOW_SECONDS),
                )
                self.db.commit()

            except Exception:
                self.db.rollback()
                raise

        if applied:
            self.notification_service.receipt_received(attempt.id, attempt.tracking_code)
        return attempt_view(attempt)

    def expire_due_attempts(self, now: datetime | None = None, limit: int = 500) -> int:
        """Sweep - wygasza proby po terminie. Kazda proba w osobnej transakcji."""
        now = now or utcnow()
        expired = 0

        with storage_errors():
            for attempt in self.repo.list_due_for_expiry(now, limit=limit):
                try:
                    if self.transitions.is_due(attempt, now) and self.transitions.apply(
                        attempt, PaymentEvent.EXPIRE, now
                    ):
                        expired += 1
                    self.db.commit()
                except Exception:
                    self.db.rollback()
                    raise

        if expired:
            logger.info(f"Expired {expired} payment attempt(s)")
        return expired

    def _get_owned_live_attempt(self, user_id: int, attempt_id: int, now: datetime) -> PaymentAttemptModel:
        attempt = self.repo.get_attempt(attempt_id)
        if not attempt:
            raise PaymentAttemptNotFound(f"Payment attempt {attempt_id} does not exist")
        if attempt.user_id != user_id:
            raise AccessDenied("Payment attempt belongs to another user")

        if self.transitions.expire_if_due(attempt, now):
            # zapisz wygasniecie zanim zwrocimy blad
            self.db.commit()
            raise PaymentAttemptExpired(
                f"Payment attempt {attempt.tracking_code} has expired, start a new payment",
                attempt_id=attempt.id,
            )
        return attempt
