# storefront/services/notification_service.py
from kombu.exceptions import OperationalError

from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Order notifications.
    Queued through Celery so checkout never waits on delivery.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int, order_number: str):
        """
        Queue the "order placed" notification. The order is already committed,
        so a broker outage is logged instead of failing the request.
        """
        try:
            send_order_notification_task.delay(user_id, order_id, order_number)
        except OperationalError as e:
            logger.error(f"Could not queue notification for order {order_number}: {e}")


@celery_app.task(name="storefront.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int, order_number: str):
    """
    Celery task; email delivery is handled elsewhere, here we only log.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_number} (id {order_id}) placed")

    return {"user_id": user_id, "order_id": order_id, "order_number": order_number, "status": "sent"}
