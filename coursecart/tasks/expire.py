# coursecart/tasks/expire.py
from coursecart.celery_worker import celery_app
from coursecart.data.database import SessionLocal
from coursecart.services.payment_service import PaymentService
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="coursecart.tasks.expire.expire_payment_attempts_task")
def expire_payment_attempts_task():
    logger.info("Expire payment attempts task started")

    db = SessionLocal()
    try:
        expired = PaymentService(db).expire_due_attempts()
        logger.info(f"Expire payment attempts task finished, expired {expired}")
        return {"expired": expired}

    finally:
        db.close()
