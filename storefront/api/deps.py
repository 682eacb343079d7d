# storefront/api/deps.py
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService


def get_lock_service() -> LockService:
    return LockService()


def get_notification_service() -> NotificationService:
    return NotificationService()
