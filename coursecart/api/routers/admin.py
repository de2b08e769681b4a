# coursecart/api/routers/admin.py
from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from coursecart.api.deps import get_notification_service
from coursecart.data.database import get_db
from coursecart.domain.schemas import (
    DecisionIn,
    IntegrityCheckOut,
    PaymentAttemptOut,
    PaymentStatsOut,
    PendingApprovalOut,
    RefundIn,
)
from coursecart.services.admin_review_service import AdminReviewService
from coursecart.services.integrity_service import IntegrityService
from coursecart.services.notification_service import NotificationService

# autoryzacja admina jest po stronie gatewaya
router = APIRouter(prefix="/admin", tags=["admin"])


def get_review_service(db: Session, notification_service: NotificationService):
    return AdminReviewService(db, notification_service=notification_service)


@router.get("/payments/pending", response_model=List[PendingApprovalOut])
def list_pending(db: Session = Depends(get_db)):
    return IntegrityService(db).list_pending_approvals()


@router.post("/payments/{attempt_id}/decision", response_model=PaymentAttemptOut)
def submit_decision(
    attempt_id: int,
    payload: DecisionIn,
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Approved / Rejected (wymaga reason) / Refunded.
    Decyzja na juz rozstrzygnietej platnosci zwraca jej aktualny stan.
    """
    svc = get_review_service(db, notification_service)
    return svc.submit_admin_decision(attempt_id, payload.reviewer, payload.decision, payload.reason)


@router.post("/payments/{attempt_id}/refund", response_model=PaymentAttemptOut)
def refund(
    attempt_id: int,
    payload: RefundIn,
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return get_review_service(db, notification_service).refund_payment(attempt_id, payload.reviewer, payload.reason)


@router.get("/payments/stats", response_model=PaymentStatsOut)
def payment_stats(db: Session = Depends(get_db)):
    svc = IntegrityService(db)
    return {"statuses": svc.status_summary(), "reviewers": svc.reviewer_stats()}


@router.get("/integrity", response_model=Dict[str, IntegrityCheckOut])
def integrity(db: Session = Depends(get_db)):
    return IntegrityService(db).integrity_report()
