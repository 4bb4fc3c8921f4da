# app/services/order_lifecycle.py
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.data.database import transaction
from app.data.models.order import OrderModel
from app.domain.enums import OrderStatus, PaymentMethod, PaymentStatus
from app.domain.errors import GatewayError, InvalidTransitionError, OrderNotFoundError
from app.repos.order_repo import OrderRepo
from app.services.notification_service import NotificationService
from app.services.payment_gateway import GatewayEvent, PaymentGateway
from app.services.scheduler import OrderDeletionScheduler
from app.utils.settings import ORDER_DELETE_AFTER_DAYS
from app.utils.logging import get_logger

logger = get_logger(__name__)

_FORWARD = [
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]
_CANCELABLE = {OrderStatus.PENDING, OrderStatus.PROCESSING}


def check_transition(current: OrderStatus, requested: OrderStatus) -> None:
    """
    pending -> processing -> shipped -> delivered, forward only (steps may be skipped);
    pending|processing -> canceled. delivered and canceled are terminal.
    """
    if current == requested:
        return
    if requested == OrderStatus.CANCELED:
        if current in _CANCELABLE:
            return
    elif current in _FORWARD and _FORWARD.index(requested) > _FORWARD.index(current):
        return
    raise InvalidTransitionError(current.value, requested.value)


@dataclass
class PaymentConfirmation:
    confirmed: bool
    payment_status: PaymentStatus
    order: OrderModel


class OrderLifecycleService:
    """
    Everything that happens to an order after checkout:
    admin status edits, customer cancellation, payment confirmation
    (customer polling + processor callbacks), delayed deletion of canceled orders.

    Payment status writes from all three sources go through
    _apply_payment_status and the last write wins. There is no version
    check, so a late callback can overwrite a newer admin edit.
    """

    def __init__(
        self,
        db: Session,
        payment_gateway: PaymentGateway | None = None,
        notifications: NotificationService | None = None,
        scheduler: OrderDeletionScheduler | None = None,
        delete_after_days: int = ORDER_DELETE_AFTER_DAYS,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.payment_gateway = payment_gateway
        self.notifications = notifications or NotificationService()
        self.scheduler = scheduler or OrderDeletionScheduler()
        self.delete_after_days = delete_after_days

    def _load(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    def transition_status(
        self,
        order_id: int,
        new_status: OrderStatus | None = None,
        payment_status: PaymentStatus | None = None,
    ) -> OrderModel:
        """Use Case: admin edit of status and/or payment status."""
        order = self._load(order_id)
        old_status = OrderStatus(order.status)

        if new_status is not None:
            #validated before anything is written
            check_transition(old_status, new_status)

        with transaction(self.db):
            if new_status is not None:
                order.status = new_status.value
                if new_status == OrderStatus.DELIVERED:
                    #delivery is proof of payment, written in the same commit
                    payment_status = PaymentStatus.PAID
            if payment_status is not None:
                self._apply_payment_status(order, payment_status)

        self._after_status_change(order, old_status)
        return order

    def cancel(self, order_id: int, user_id: int) -> OrderModel:
        """Use Case: customer cancels an order that has not shipped yet."""
        order = self._load(order_id)
        if order.user_id != user_id:
            raise PermissionError("No access to this order")

        old_status = OrderStatus(order.status)
        check_transition(old_status, OrderStatus.CANCELED)

        with transaction(self.db):
            order.status = OrderStatus.CANCELED.value

        self._after_status_change(order, old_status)
        return order

    def confirm_payment(self, order_id: int, user_id: int) -> PaymentConfirmation:
        """
        Use Case: customer polls after completing the card step client-side.
        Gateway errors propagate and leave the order untouched.
        """
        order = self._load(order_id)
        if order.user_id != user_id:
            raise PermissionError("No access to this order")

        if order.payment_method != PaymentMethod.CARD.value or not order.payment_authorization_id:
            raise OrderNotFoundError(f"Order {order_id} has no card payment")

        if order.payment_status == PaymentStatus.PAID.value:
            return PaymentConfirmation(True, PaymentStatus.PAID, order)

        authorization = self._gateway().retrieve_authorization(order.payment_authorization_id)
        status = authorization.payment_status

        if status.value != order.payment_status:
            old_status = OrderStatus(order.status)
            with transaction(self.db):
                self._apply_payment_status(order, status)
            self._after_status_change(order, old_status)

        return PaymentConfirmation(status == PaymentStatus.PAID, status, order)

    def apply_gateway_event(self, event: GatewayEvent) -> Optional[OrderModel]:
        """Use Case: asynchronous processor callback. Unknown authorizations are ignored."""
        status = event.payment_status
        if status is None:
            logger.info(f"Ignoring gateway event {event.type}")
            return None

        order = self.repo.get_by_authorization_id(event.authorization_id)
        if not order:
            logger.warning(f"No order for authorization {event.authorization_id} ({event.type})")
            return None

        old_status = OrderStatus(order.status)
        with transaction(self.db):
            self._apply_payment_status(order, status)

        logger.info(f"Order {order.id} payment -> {status.value} from {event.type}")
        self._after_status_change(order, old_status)
        return order

    def delete_if_still_canceled(self, order_id: int) -> bool:
        """
        Delayed job body. Re-reads the order: anything that moved it out of
        canceled during the delay keeps it alive. Safe to run more than once.
        """
        with transaction(self.db):
            order = self.repo.get_order(order_id)
            if order is None:
                logger.info(f"Order {order_id} already gone")
                return False
            if order.status != OrderStatus.CANCELED.value:
                logger.info(f"Order {order_id} is {order.status} now, keeping it")
                return False
            self.repo.delete(order)

        logger.info(f"Deleted canceled order {order_id}")
        return True

    def _apply_payment_status(self, order: OrderModel, status: PaymentStatus) -> None:
        order.payment_status = status.value
        #a paid order that was waiting for money moves on
        if status == PaymentStatus.PAID and order.status == OrderStatus.PENDING.value:
            order.status = OrderStatus.PROCESSING.value

    def _release_authorization(self, order: OrderModel) -> None:
        if not order.payment_authorization_id or order.payment_status == PaymentStatus.PAID.value:
            return
        if self.payment_gateway is None:
            return
        try:
            self.payment_gateway.cancel_authorization(order.payment_authorization_id)
        except GatewayError as e:
            #the order is canceled either way, an open authorization just lapses
            logger.warning(f"Could not cancel authorization {order.payment_authorization_id}: {e}")

    def _after_status_change(self, order: OrderModel, old_status: OrderStatus) -> None:
        if order.status == OrderStatus.CANCELED.value and old_status != OrderStatus.CANCELED:
            #customer and admin cancellations alike
            self._release_authorization(order)
            self.scheduler.schedule(order.id, self.delete_after_days)

        if order.status != old_status.value:
            self.notifications.publish(
                "order.status_updated",
                {
                    "order_id": order.id,
                    "user_id": order.user_id,
                    "old_status": old_status.value,
                    "new_status": order.status,
                    "payment_status": order.payment_status,
                },
            )

    def _gateway(self) -> PaymentGateway:
        if self.payment_gateway is None:
            raise GatewayError("No payment gateway configured")
        return self.payment_gateway
