# coursecart/services/admin_review_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from coursecart.data.models.payment_attempt import PaymentAttemptModel
from coursecart.data.types import utcnow
from coursecart.domain.errors import (
    MissingDecisionReason,
    MissingReviewer,
    PaymentAttemptExpired,
    PaymentAttemptNotFound,
    storage_errors,
)
from coursecart.domain.statuses import AdminDecision, PaymentEvent, PaymentStatus
from coursecart.repos.order_repo import OrderRepo
from coursecart.repos.payment_repo import PaymentRepo
from coursecart.services.enrollment_service import EnrollmentService
from coursecart.services.notification_service import NotificationService
from coursecart.services.payment_transitions import PaymentTransitions, attempt_view
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)

# statusy po decyzji - ponowna decyzja zwraca stan bez zmian
_SETTLED = frozenset({PaymentStatus.PAID, PaymentStatus.FAILED, PaymentStatus.REFUNDED})


class AdminReviewService:
    """
    Decyzje admina dla platnosci recznych.

    Zatwierdzenie: CAS AwaitingAdminApproval -> Paid i zapisy na kursy w jednej transakcji.
    Przegrany wyscig (drugi admin, podwojne klikniecie) dostaje rozstrzygnieta probe,
    bez bledu i bez skutkow ubocznych.
    """

    def __init__(
        self,
        db: Session,
        enrollment_service: EnrollmentService | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.repo = PaymentRepo(db)
        self.order_repo = OrderRepo(db)
        self.transitions = PaymentTransitions(db)
        self.enrollment_service = enrollment_service or EnrollmentService(db)
        self.notification_service = notification_service or NotificationService()

    def submit_admin_decision(
        self,
        attempt_id: int,
        reviewer: str | None,
        decision: AdminDecision | str,
        reason: str | None = None,
    ) -> Dict[str, Any]:
        reviewer = (reviewer or "").strip()
        if not reviewer:
            raise MissingReviewer("Reviewer id is required")

        decision = AdminDecision(decision)
        if decision == AdminDecision.REFUNDED:
            return self.refund_payment(attempt_id, reviewer, reason)
        if decision == AdminDecision.REJECTED and not (reason or "").strip():
            raise MissingDecisionReason("Rejection requires a reason")

        event = PaymentEvent.APPROVE if decision == AdminDecision.APPROVED else PaymentEvent.REJECT

        with storage_errors():
            try:
                now = utcnow()
                attempt = self._get_attempt(attempt_id)

                if attempt.payment_status in _SETTLED:
                    logger.info(
                        f"Payment {attempt.id} already settled as {attempt.payment_status.label}, "
                        f"ignoring '{decision.value}' by {reviewer}"
                    )
                    return attempt_view(attempt)

                self._raise_if_expired(attempt, now)

                applied = self.transitions.apply(
                    attempt,
                    event,
                    now,
                    admin_reviewed_by=reviewer,
                    admin_decision=decision.value,
                    admin_decision_reason=reason,
                    admin_reviewed_at=now,
                )
                if not applied:
                    self.db.commit()
                    if attempt.payment_status == PaymentStatus.EXPIRED:
                        # sweep wygasil probe przed nami
                        raise self._expired_error(attempt)
                    return attempt_view(attempt)

                if event == PaymentEvent.APPROVE:
                    order = self.order_repo.get_order(attempt.order_id)
                    self.enrollment_service.enroll_for_order(order, attempt.id)

                self.db.commit()

            except Exception:
                self.db.rollback()
                raise

        self.notification_service.payment_decided(
            attempt.user_id, attempt.id, attempt.tracking_code, decision.value
        )
        return attempt_view(attempt)

    def refund_payment(self, attempt_id: int, reviewer: str | None, reason: str | None = None) -> Dict[str, Any]:
        reviewer = (reviewer or "").strip()
        if not reviewer:
            raise MissingReviewer("Reviewer id is required")

        with storage_errors():
            try:
                now = utcnow()
                attempt = self._get_attempt(attempt_id)

                if attempt.payment_status == PaymentStatus.REFUNDED:
                    logger.info(f"Payment {attempt.id} already refunded, ignoring refund by {reviewer}")
                    return attempt_view(attempt)

                # dane zatwierdzenia zostaja, refund ma wlasne pola
                applied = self.transitions.apply(
                    attempt,
                    PaymentEvent.REFUND,
                    now,
                    refunded_by=reviewer,
                    refund_reason=reason,
                    refunded_at=now,
                )
                if not applied:
                    self.db.commit()
                    return attempt_view(attempt)

                self.enrollment_service.revoke_for_attempt(attempt.id)
                self.db.commit()

            except Exception:
                self.db.rollback()
                raise

        self.notification_service.payment_decided(
            attempt.user_id, attempt.id, attempt.tracking_code, AdminDecision.REFUNDED.value
        )
        return attempt_view(attempt)

    def _get_attempt(self, attempt_id: int) -> PaymentAttemptModel:
        attempt = self.repo.get_attempt(attempt_id)
        if not attempt:
            raise PaymentAttemptNotFound(f"Payment attempt {attempt_id} does not exist")
        return attempt

    def _raise_if_expired(self, attempt: PaymentAttemptModel, now):
        if self.transitions.expire_if_due(attempt, now):
            self.db.commit()
            raise self._expired_error(attempt)

    @staticmethod
    def _expired_error(attempt: PaymentAttemptModel) -> PaymentAttemptExpired:
        return PaymentAttemptExpired(
            f"Payment attempt {attempt.tracking_code} expired before review",
            attempt_id=attempt.id,
        )
