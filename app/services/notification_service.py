# app/services/notification_service.py
import json
from typing import Any, Dict

from app.celery_worker import celery_app
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Fire-and-forget event publication (cart.updated, order.created,
    order.status_updated). Uses Celery for async delivery.

    Publishing never fails the caller: the cart write or the order commit
    has already happened by the time an event goes out.
    """

    def publish(self, event: str, payload: Dict[str, Any]) -> bool:
        try:
            publish_event_task.delay(event, _jsonable(payload))
            return True
        except Exception as e:
            logger.warning(f"Could not publish {event}: {e}")
            return False


def _jsonable(payload: Dict[str, Any]) -> Dict[str, Any]:
    #Decimal / datetime / enums -> str so the broker serializer accepts them
    return json.loads(json.dumps(payload, default=str))


@celery_app.task(name="app.services.notification_service.publish_event_task")
def publish_event_task(event: str, payload: Dict[str, Any]):
    """
    Celery task - a real deployment would broadcast over websockets / email.
    For now it only logs.
    """
    logger.info(f"[EVENT] {event}: {payload}")
    return {"event": event, "status": "sent"}
