# app/services/order_service.py
from contextlib import nullcontext
from typing import List, Tuple

from sqlalchemy.orm import Session

from app.data.database import transaction
from app.data.models.order import OrderModel
from app.data.models.order_item import OrderItemModel
from app.data.models.user import UserModel
from app.domain.cart import CartKey, CartSnapshot
from app.domain.enums import OrderStatus, PaymentMethod, PaymentStatus
from app.domain.errors import EmptyCartError, OrderNotFoundError
from app.domain.schemas import OrderCreate
from app.repos.order_repo import OrderRepo
from app.repos.user_repo import UserRepo
from app.services.cart_service import CartService
from app.services.notification_service import NotificationService
from app.services.payment_gateway import Payer, PaymentGateway
from app.utils.settings import CHECKOUT_HOLDS_CART_LOCK, CHECKOUT_LOCK_LEASE_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Checkout and order queries.

    create_order is one database transaction: the order header, the payment
    authorization fields and the items commit together or not at all. The
    cart is cleared only after the commit, and a failure there never undoes
    the order.
    """

    def __init__(
        self,
        db: Session,
        cart_service: CartService,
        payment_gateway: PaymentGateway,
        notifications: NotificationService | None = None,
        hold_cart_lock: bool = CHECKOUT_HOLDS_CART_LOCK,
        checkout_lease: int = CHECKOUT_LOCK_LEASE_SECONDS,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.users = UserRepo(db)
        self.cart_service = cart_service
        self.payment_gateway = payment_gateway
        self.notifications = notifications or NotificationService()
        self.hold_cart_lock = hold_cart_lock
        self.checkout_lease = checkout_lease

    def create_order(self, user_id: int, order_input: OrderCreate) -> OrderModel:
        """
        Use Case: checkout of the user's cart.

        1. snapshot the cart (EmptyCartError if nothing in it)
        2. insert the order, total frozen from the snapshot
        3. card: create the payment authorization, store its reference
        4. insert one item per cart line, prices copied verbatim
        5. commit, then clear the cart (tolerated failure); if the lock lease
           ran out meanwhile, only the ordered quantities are taken out
        """
        user = self.users.get_user(user_id)
        if not user:
            raise ValueError("User not found")

        key = CartKey.for_user(user_id)

        #checkout consumes the cart, so it takes the same lock as a mutation;
        #two parallel checkouts cannot both read the same snapshot.
        #its lease outlasts the payment call, a mutation lease would not
        guard = (
            self.cart_service.locked(key, lease=self.checkout_lease)
            if self.hold_cart_lock
            else nullcontext()
        )
        with guard as token:
            with transaction(self.db):
                snapshot = self.cart_service.get_snapshot(key)
                if snapshot.is_empty:
                    raise EmptyCartError()
                order = self._insert_order(user, snapshot, order_input)

            logger.info(
                f"Order {order.id} created for user {user_id}: "
                f"{snapshot.item_count} lines, total {order.total_amount}"
            )

            lock_kept = token is None or self.cart_service.still_locked(key, token)
            if lock_kept:
                cleared = self.cart_service.clear(key)

        if not lock_kept:
            #someone else may have written the cart since the snapshot
            logger.warning(f"Lock on {key} expired during checkout of order {order.id}")
            cleared = self.cart_service.deduct(key, snapshot.lines)

        if not cleared:
            #committed order stays, the stale cart expires on its own TTL
            logger.warning(f"Order {order.id} committed but cart {key} was not cleared")

        created = self.repo.refresh(order)
        self.notifications.publish(
            "order.created",
            {
                "order_id": created.id,
                "user_id": created.user_id,
                "total_amount": created.total_amount,
                "status": created.status,
                "payment_status": created.payment_status,
                "created_at": created.created_at,
                "customer_name": f"{created.first_name} {created.last_name}",
            },
        )
        return created

    def _insert_order(self, user: UserModel, snapshot: CartSnapshot, data: OrderCreate) -> OrderModel:
        order = self.repo.add_order(
            OrderModel(
                user_id=user.id,
                first_name=data.first_name,
                last_name=data.last_name,
                shipping_phone=data.shipping_phone,
                shipping_street=data.shipping_street,
                shipping_city=data.shipping_city,
                shipping_state=data.shipping_state,
                shipping_postal_code=data.shipping_postal_code,
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.UNPAID.value,
                payment_method=data.payment_method.value,
                total_amount=snapshot.total,
            )
        )

        if data.payment_method == PaymentMethod.CARD:
            #a GatewayError here propagates and rolls back the order row above
            self._authorize(order, user, snapshot, data)

        order.items.extend(
            OrderItemModel(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in snapshot.lines
        )
        self.db.flush()
        return order

    def _authorize(self, order: OrderModel, user: UserModel, snapshot: CartSnapshot, data: OrderCreate) -> None:
        amount_minor = self.payment_gateway.to_minor_units(snapshot.total)
        authorization = self.payment_gateway.create_authorization(
            Payer(
                user_id=user.id,
                email=user.email,
                name=user.name,
                customer_id=user.gateway_customer_id,
            ),
            amount_minor,
            {
                "order_id": order.id,
                "customer_name": f"{data.first_name} {data.last_name}",
                "customer_email": user.email,
            },
        )

        if authorization.customer_id and authorization.customer_id != user.gateway_customer_id:
            user.gateway_customer_id = authorization.customer_id

        order.payment_authorization_id = authorization.id
        order.payment_client_secret = authorization.client_secret
        order.payment_metadata = {
            "authorization_id": authorization.id,
            "amount": amount_minor,
            "currency": authorization.currency,
        }
        logger.info(f"Order {order.id} authorized as {authorization.id} for {amount_minor} minor units")

    #queries
    def get_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)

        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")

        if order.user_id != user_id:
            raise PermissionError("No access to this order")

        return order

    def list_orders(self, user_id: int) -> List[OrderModel]:
        return self.repo.list_for_user(user_id)

    def get_order_admin(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def list_all(self, page: int = 1, per_page: int = 10) -> Tuple[List[OrderModel], int]:
        return self.repo.list_page(max(page, 1), per_page)
