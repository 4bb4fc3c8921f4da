# app/tasks/orders.py
from app.celery_worker import celery_app
from app.data.database import SessionLocal
from app.services.order_lifecycle import OrderLifecycleService
from app.utils.logging import get_logger

logger = get_logger(__name__)


@celery_app.task(name="app.tasks.orders.delete_canceled_order_task")
def delete_canceled_order_task(order_id: int):
    logger.info(f"Delete canceled order task started for order {order_id}")

    db = SessionLocal()
    try:
        deleted = OrderLifecycleService(db).delete_if_still_canceled(order_id)
    finally:
        db.close()

    return {"order_id": order_id, "deleted": deleted}
