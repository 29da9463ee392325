# checkout/services/notification_service.py
from decimal import Decimal

from kombu.exceptions import OperationalError

from checkout.celery_worker import celery_app
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Purchase receipts, sent through Celery after the payment transaction commits.
    """

    @staticmethod
    def send_order_paid_notification(user_id: int, order_id: int, charged: Decimal) -> None:
        try:
            send_order_paid_notification_task.delay(user_id, order_id, str(charged))
        except OperationalError as e:
            # the order is already committed, a lost receipt must not fail the purchase
            logger.warning(f"Failed to queue receipt for order {order_id}: {e}")


@celery_app.task(name="checkout.services.notification_service.send_order_paid_notification_task")
def send_order_paid_notification_task(user_id: int, order_id: int, charged: str):
    """
    Celery task, a real deployment would send an email / push here.
    """
    logger.info(f"[NOTIFICATION] User {user_id}: order {order_id} paid, charged {charged}")
    return {"user_id": user_id, "order_id": order_id, "charged": charged, "status": "sent"}
