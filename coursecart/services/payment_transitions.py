# coursecart/services/payment_transitions.py
"""
Wspolny mechanizm zmiany statusu PaymentAttempt.

1. transition() liczy nastepny status albo rzuca InvalidTransition
2. compare-and-swap w bazie: UPDATE ... WHERE status = <odczytany status>
3. status zamowienia aktualizowany w tej samej transakcji

Nic nie commituje - robi to use case ktory wywoluje apply().
"""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.orm import Session

from coursecart.data.models.payment_attempt import PaymentAttemptModel
from coursecart.domain.statuses import (
    EXPIRABLE_STATUSES,
    PaymentEvent,
    PaymentMethod,
    PaymentStatus,
    order_status_for,
    transition,
)
from coursecart.repos.order_repo import OrderRepo
from coursecart.repos.payment_repo import PaymentRepo
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentTransitions:
    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepo(db)
        self.order_repo = OrderRepo(db)

    def apply(self, attempt: PaymentAttemptModel, event: PaymentEvent, now: datetime, **values: Any) -> bool:
        """
        Zwraca True jesli to my zmienilismy status.
        False = ktos inny byl szybszy; `attempt` jest wtedy przeladowany z bazy.
        """
        current = attempt.payment_status
        target = transition(current, event)

        rows = self.repo.compare_and_set_status(
            attempt.id,
            expected=[current],
            new_status=target,
            updated_at=now,
            **values,
        )
        self.repo.reload(attempt)

        if rows == 0:
            logger.info(
                f"Payment {attempt.id}: '{event.value}' lost the race, "
                f"status is already {attempt.payment_status.label}"
            )
            return False

        order = self.order_repo.get_order(attempt.order_id)
        self.order_repo.update_order_status(order, order_status_for(target).value)

        logger.info(
            f"Payment {attempt.id} ({attempt.tracking_code}): {current.label} -> {target.label}, "
            f"order {order.id} is {order.status}"
        )
        return True

    def is_due(self, attempt: PaymentAttemptModel, now: datetime) -> bool:
        return attempt.payment_status in EXPIRABLE_STATUSES and attempt.expires_at <= now

    def expire_if_due(self, attempt: PaymentAttemptModel, now: datetime) -> bool:
        """
        Leniwa ewaluacja terminu. Zmienia tylko status (pola proby zostaja bez zmian).
        Zwraca True jesli proba jest teraz Expired.
        """
        if self.is_due(attempt, now):
            self.apply(attempt, PaymentEvent.EXPIRE, now)
        return attempt.payment_status == PaymentStatus.EXPIRED


def attempt_view(a: PaymentAttemptModel) -> Dict[str, Any]:
    return {
        "id": a.id,
        "order_id": a.order_id,
        "user_id": a.user_id,
        "tracking_code": a.tracking_code,
        "amount": a.amount,
        "method": "Manual" if a.method == PaymentMethod.MANUAL else str(a.method),
        "status": a.payment_status.label,
        "receipt_image_url": a.receipt_image_url,
        "receipt_file_name": a.receipt_file_name,
        "receipt_uploaded_at": a.receipt_uploaded_at,
        "admin_reviewed_by": a.admin_reviewed_by,
        "admin_decision": a.admin_decision,
        "admin_decision_reason": a.admin_decision_reason,
        "admin_reviewed_at": a.admin_reviewed_at,
        "refunded_by": a.refunded_by,
        "refunded_at": a.refunded_at,
        "expires_at": a.expires_at,
        "created_at": a.created_at,
    }
