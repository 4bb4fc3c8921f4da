"""
Pytest configuration and fixtures for tests.

Redis is replaced by fakeredis (with Lua support for the lock release and
cart merge scripts), the database by in-memory SQLite, and the payment
processor, event publisher and scheduler by in-process fakes.
"""

import os

# configure before any app module reads settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PAYMENT_GATEWAY"] = "fake"
os.environ["CATALOG_BACKEND"] = "db"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from decimal import Decimal

import pytest
from fakeredis import FakeRedis, FakeServer
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.data.database import Base
from app.data.models import OrderItemModel, OrderModel, ProductModel, UserModel
from app.domain.cart import CartKey
from app.repos.cart_repo import CartRepo
from app.services.cart_service import CartService
from app.services.catalog import DbCatalog
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.order_lifecycle import OrderLifecycleService
from app.services.order_service import OrderService
from app.services.payment_gateway import FakePaymentGateway
from app.services.scheduler import OrderDeletionScheduler


class RecordingNotifications(NotificationService):
    """Keeps published events in memory instead of sending them to Celery."""

    def __init__(self):
        self.events = []

    def publish(self, event, payload):
        self.events.append((event, payload))
        return True

    def names(self):
        return [name for name, _ in self.events]


class RecordingScheduler(OrderDeletionScheduler):
    def __init__(self):
        self.scheduled = []

    def schedule(self, order_id, days):
        self.scheduled.append((order_id, days))
        return True


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def catalog_data(db):
    """Three products and two customers."""
    db.add_all(
        [
            ProductModel(id=1, name="Keyboard", price=Decimal("19.99")),
            ProductModel(id=2, name="Mouse", price=Decimal("5.00")),
            ProductModel(id=3, name="Monitor", price=Decimal("120.50")),
            UserModel(id=1, name="Ada Lovelace", email="ada@example.com"),
            UserModel(id=2, name="Alan Turing", email="alan@example.com"),
        ]
    )
    db.commit()


def count_rows(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture
def order_counts(db):
    """Returns a callable giving (orders, order_items) row counts."""
    return lambda: (count_rows(db, OrderModel), count_rows(db, OrderItemModel))


# ============================================================================
# Redis Fixtures
# ============================================================================

@pytest.fixture
def redis_server():
    return FakeServer()


@pytest.fixture
def redis_client(redis_server):
    """Fake Redis client (no real Redis server needed)."""
    client = FakeRedis(server=redis_server, decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def lock_service(redis_client):
    return LockService(redis_client=redis_client, lease=5, wait=0.3)


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def gateway():
    return FakePaymentGateway(currency="usd")


@pytest.fixture
def cart_service(db, redis_client, lock_service, notifications, catalog_data):
    return CartService(
        repo=CartRepo(redis_client),
        lock_service=lock_service,
        catalog=DbCatalog(db),
        notifications=notifications,
    )


@pytest.fixture
def order_service(db, cart_service, gateway, notifications):
    return OrderService(db, cart_service, gateway, notifications, hold_cart_lock=True)


@pytest.fixture
def lifecycle(db, gateway, notifications, scheduler):
    return OrderLifecycleService(db, gateway, notifications, scheduler, delete_after_days=7)


@pytest.fixture
def user_key():
    return CartKey("cart:user:1", 3600)


@pytest.fixture
def guest_key():
    return CartKey("cart:guest:sess-abc", 600)
