# app/api/deps.py
from functools import lru_cache
from typing import Optional

import redis
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.cart import CartKey, IdentityContext
from app.repos.cart_repo import CartRepo
from app.services.cart_service import CartService
from app.services.catalog import build_catalog
from app.services.lock_service import LockService
from app.services.notification_service import NotificationService
from app.services.order_lifecycle import OrderLifecycleService
from app.services.order_service import OrderService
from app.services.payment_gateway import FakePaymentGateway, PaymentGateway
from app.services.scheduler import OrderDeletionScheduler
from app.services.stripe_gateway import StripePaymentGateway
from app.utils.settings import PAYMENT_GATEWAY, REDIS_URL


@lru_cache
def get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    if PAYMENT_GATEWAY == "fake":
        return FakePaymentGateway()
    return StripePaymentGateway()


def get_notifications() -> NotificationService:
    return NotificationService()


def get_scheduler() -> OrderDeletionScheduler:
    return OrderDeletionScheduler()


def get_identity(
    x_user_id: Optional[int] = Header(None),
    x_session_id: Optional[str] = Header(None),
) -> IdentityContext:
    #authentication lives upstream; it forwards who the caller is
    if x_user_id is None and not x_session_id:
        raise HTTPException(status_code=400, detail="X-User-Id or X-Session-Id header required")
    return IdentityContext(user_id=x_user_id, session_id=x_session_id)


def get_user_id(identity: IdentityContext = Depends(get_identity)) -> int:
    if not identity.is_authenticated:
        raise HTTPException(status_code=401, detail="Unauthenticated.")
    return identity.user_id


def get_cart_key(identity: IdentityContext = Depends(get_identity)) -> CartKey:
    return CartKey.for_identity(identity)


def get_cart_service(
    db: Session = Depends(get_db),
    client: redis.Redis = Depends(get_redis),
    notifications: NotificationService = Depends(get_notifications),
) -> CartService:
    return CartService(
        repo=CartRepo(client),
        lock_service=LockService(redis_client=client),
        catalog=build_catalog(db),
        notifications=notifications,
    )


def get_order_service(
    db: Session = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifications: NotificationService = Depends(get_notifications),
) -> OrderService:
    return OrderService(db, cart_service, gateway, notifications)


def get_lifecycle_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifications: NotificationService = Depends(get_notifications),
    scheduler: OrderDeletionScheduler = Depends(get_scheduler),
) -> OrderLifecycleService:
    return OrderLifecycleService(db, gateway, notifications, scheduler)
