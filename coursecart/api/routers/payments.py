# coursecart/api/routers/payments.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from coursecart.api.deps import get_notification_service
from coursecart.data.database import get_db
from coursecart.domain.schemas import PaymentAttemptOut, ReceiptIn
from coursecart.services.notification_service import NotificationService
from coursecart.services.payment_service import PaymentService, ReceiptUpload

router = APIRouter(prefix="/payments", tags=["payments"])


def get_service(db: Session, notification_service: NotificationService):
    return PaymentService(db, notification_service)


@router.post("/{attempt_id}/begin-upload", response_model=PaymentAttemptOut)
def begin_receipt_upload(
    attempt_id: int,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return get_service(db, notification_service).begin_receipt_upload(user_id, attempt_id)


@router.post("/{attempt_id}/receipt", response_model=PaymentAttemptOut)
def upload_receipt(
    attempt_id: int,
    payload: ReceiptIn,
    user_id: int = Query(..., gt=0),
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """Po uploadzie proba czeka na decyzje admina."""
    receipt = ReceiptUpload(
        image_url=payload.image_url,
        file_name=payload.file_name,
        uploaded_at=payload.uploaded_at,
    )
    return get_service(db, notification_service).upload_receipt(user_id, attempt_id, receipt)
