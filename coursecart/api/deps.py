# coursecart/api/deps.py
from functools import lru_cache

from coursecart.services.lock_service import LockService
from coursecart.services.notification_service import NotificationService


@lru_cache
def get_lock_service() -> LockService:
    # jeden klient redis (pula polaczen) na proces
    return LockService()


def get_notification_service() -> NotificationService:
    return NotificationService()
