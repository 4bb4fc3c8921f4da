# app/services/scheduler.py
from app.celery_worker import celery_app
from app.utils.logging import get_logger

logger = get_logger(__name__)

DELETE_CANCELED_ORDER_TASK = "app.tasks.orders.delete_canceled_order_task"


class OrderDeletionScheduler:
    """Schedules delete-if-still-canceled for an order, N days from now."""

    def schedule(self, order_id: int, days: int) -> bool:
        try:
            celery_app.send_task(
                DELETE_CANCELED_ORDER_TASK,
                args=[order_id],
                countdown=days * 24 * 60 * 60,
            )
        except Exception as e:
            #the cancellation is committed already, the order just stays around
            logger.error(f"Could not schedule deletion of order {order_id}: {e}")
            return False

        logger.info(f"Order {order_id} deletion scheduled in {days} days")
        return True
