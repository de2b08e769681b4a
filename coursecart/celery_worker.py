# coursecart/celery_worker.py
from celery import Celery

from coursecart.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    EXPIRE_SWEEP_INTERVAL_SECONDS,
)

celery_app = Celery(
    "coursecart",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAZNE: Explicite importuj taski, zeby Celery je zarejestrowal
celery_app.conf.imports = (
    "coursecart.tasks.expire",
    "coursecart.services.notification_service",
)

# Konfiguracja beat schedule
celery_app.conf.beat_schedule = {
    "expire-payment-attempts": {
        "task": "coursecart.tasks.expire.expire_payment_attempts_task",
        "schedule": EXPIRE_SWEEP_INTERVAL_SECONDS,
    },
}

celery_app.conf.timezone = "UTC"
