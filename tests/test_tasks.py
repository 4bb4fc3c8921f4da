"""
Unit Tests: Celery side

Deletion scheduling, event publication and the delayed deletion task body.
Nothing here talks to a broker; send_task / delay are monkeypatched.
"""

from datetime import datetime, timezone
from decimal import Decimal

from app.celery_worker import celery_app
from app.data.models import OrderModel
from app.domain.enums import OrderStatus
from app.services import notification_service
from app.services.notification_service import NotificationService, publish_event_task
from app.services.scheduler import DELETE_CANCELED_ORDER_TASK, OrderDeletionScheduler
from app.tasks import orders as order_tasks


def make_order(db, status):
    order = OrderModel(
        user_id=1,
        first_name="Ada",
        last_name="Lovelace",
        shipping_phone="0100000000",
        shipping_street="12 Analytical St",
        shipping_city="Cairo",
        status=status.value,
        total_amount=Decimal("10.00"),
    )
    db.add(order)
    db.commit()
    return order.id


class TestOrderDeletionScheduler:
    def test_schedules_with_countdown(self, monkeypatch):
        sent = []
        monkeypatch.setattr(celery_app, "send_task", lambda name, **kwargs: sent.append((name, kwargs)))

        assert OrderDeletionScheduler().schedule(42, 7) is True
        assert sent == [(DELETE_CANCELED_ORDER_TASK, {"args": [42], "countdown": 7 * 86400})]

    def test_broker_failure_is_reported(self, monkeypatch):
        def broker_down(name, **kwargs):
            raise ConnectionError("broker unreachable")

        monkeypatch.setattr(celery_app, "send_task", broker_down)

        assert OrderDeletionScheduler().schedule(42, 7) is False


class TestNotificationService:
    def test_publish_serializes_payload(self, monkeypatch):
        sent = []
        monkeypatch.setattr(publish_event_task, "delay", lambda event, payload: sent.append((event, payload)))

        created = datetime(2024, 1, 2, tzinfo=timezone.utc)
        ok = NotificationService().publish(
            "order.created", {"order_id": 1, "total_amount": Decimal("9.99"), "created_at": created}
        )

        assert ok is True
        assert sent == [
            ("order.created", {"order_id": 1, "total_amount": "9.99", "created_at": str(created)})
        ]

    def test_publish_failure_is_swallowed(self, monkeypatch):
        def broker_down(*args):
            raise ConnectionError("broker unreachable")

        monkeypatch.setattr(notification_service.publish_event_task, "delay", broker_down)

        assert NotificationService().publish("cart.updated", {"cart_key": "cart:user:1"}) is False

    def test_task_body(self):
        assert publish_event_task.run("cart.updated", {}) == {"event": "cart.updated", "status": "sent"}


class TestDeleteCanceledOrderTask:
    def test_deletes_canceled_order(self, db, session_factory, catalog_data, monkeypatch):
        monkeypatch.setattr(order_tasks, "SessionLocal", session_factory)
        order_id = make_order(db, OrderStatus.CANCELED)

        assert order_tasks.delete_canceled_order_task.run(order_id) == {"order_id": order_id, "deleted": True}
        db.expire_all()
        assert db.get(OrderModel, order_id) is None

    def test_keeps_reactivated_order(self, db, session_factory, catalog_data, monkeypatch):
        monkeypatch.setattr(order_tasks, "SessionLocal", session_factory)
        order_id = make_order(db, OrderStatus.PROCESSING)

        assert order_tasks.delete_canceled_order_task.run(order_id)["deleted"] is False

    def test_missing_order(self, session_factory, catalog_data, monkeypatch):
        monkeypatch.setattr(order_tasks, "SessionLocal", session_factory)

        assert order_tasks.delete_canceled_order_task.run(999)["deleted"] is False
