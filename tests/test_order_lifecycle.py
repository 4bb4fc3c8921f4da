"""
Unit Tests: OrderLifecycleService

Status machine, customer cancellation, payment confirmation from polling
and from processor callbacks, and the delayed deletion job.
"""

import pytest

from app.data.models import OrderModel
from app.domain.enums import OrderStatus, PaymentMethod, PaymentStatus
from app.domain.errors import GatewayError, InvalidTransitionError, OrderNotFoundError
from app.domain.schemas import OrderCreate
from app.services.order_lifecycle import check_transition
from app.services.payment_gateway import GatewayEvent


def place_order(order_service, cart_service, user_key, method=PaymentMethod.CASH_ON_DELIVERY):
    cart_service.add(user_key, 1, 1)
    return order_service.create_order(
        1,
        OrderCreate(
            first_name="Ada",
            last_name="Lovelace",
            shipping_phone="0100000000",
            shipping_street="12 Analytical St",
            shipping_city="Cairo",
            payment_method=method,
        ),
    )


@pytest.fixture
def cod_order(order_service, cart_service, user_key):
    return place_order(order_service, cart_service, user_key)


@pytest.fixture
def card_order(order_service, cart_service, user_key):
    return place_order(order_service, cart_service, user_key, PaymentMethod.CARD)


class TestCheckTransition:
    @pytest.mark.parametrize(
        "current, requested",
        [
            (OrderStatus.PENDING, OrderStatus.PROCESSING),
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.PROCESSING, OrderStatus.DELIVERED),
            (OrderStatus.PENDING, OrderStatus.CANCELED),
            (OrderStatus.PROCESSING, OrderStatus.CANCELED),
            (OrderStatus.SHIPPED, OrderStatus.SHIPPED),
        ],
    )
    def test_allowed(self, current, requested):
        check_transition(current, requested)

    @pytest.mark.parametrize(
        "current, requested",
        [
            (OrderStatus.SHIPPED, OrderStatus.CANCELED),
            (OrderStatus.DELIVERED, OrderStatus.CANCELED),
            (OrderStatus.SHIPPED, OrderStatus.PENDING),
            (OrderStatus.DELIVERED, OrderStatus.PROCESSING),
            (OrderStatus.CANCELED, OrderStatus.PROCESSING),
        ],
    )
    def test_rejected(self, current, requested):
        with pytest.raises(InvalidTransitionError):
            check_transition(current, requested)


class TestTransitionStatus:
    def test_delivered_forces_paid(self, lifecycle, cod_order):
        order = lifecycle.transition_status(cod_order.id, OrderStatus.DELIVERED)

        assert order.status == OrderStatus.DELIVERED.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_payment_status_only(self, lifecycle, cod_order, notifications):
        order = lifecycle.transition_status(cod_order.id, payment_status=PaymentStatus.FAILED)

        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.status == OrderStatus.PENDING.value
        assert "order.status_updated" not in notifications.names()

    def test_status_change_is_published(self, lifecycle, cod_order, notifications):
        lifecycle.transition_status(cod_order.id, OrderStatus.SHIPPED)

        name, payload = notifications.events[-1]
        assert name == "order.status_updated"
        assert payload["old_status"] == "pending"
        assert payload["new_status"] == "shipped"

    def test_backward_move_writes_nothing(self, db, lifecycle, cod_order):
        lifecycle.transition_status(cod_order.id, OrderStatus.SHIPPED)

        with pytest.raises(InvalidTransitionError):
            lifecycle.transition_status(cod_order.id, OrderStatus.PENDING, PaymentStatus.PAID)

        stored = db.get(OrderModel, cod_order.id)
        assert stored.status == OrderStatus.SHIPPED.value
        assert stored.payment_status == PaymentStatus.UNPAID.value

    def test_admin_cancel_schedules_deletion(self, lifecycle, cod_order, scheduler):
        lifecycle.transition_status(cod_order.id, OrderStatus.CANCELED)

        assert scheduler.scheduled == [(cod_order.id, 7)]

    @pytest.mark.parametrize("earlier", [PaymentStatus.FAILED, PaymentStatus.REQUIRES_ACTION])
    def test_delivered_overrides_earlier_payment_status(self, lifecycle, cod_order, earlier):
        lifecycle.transition_status(cod_order.id, payment_status=earlier)

        order = lifecycle.transition_status(cod_order.id, OrderStatus.DELIVERED)

        assert order.payment_status == PaymentStatus.PAID.value

    def test_delivered_wins_over_requested_payment_status(self, db, lifecycle, cod_order):
        lifecycle.transition_status(cod_order.id, OrderStatus.DELIVERED, PaymentStatus.FAILED)

        stored = db.get(OrderModel, cod_order.id)
        assert stored.status == OrderStatus.DELIVERED.value
        assert stored.payment_status == PaymentStatus.PAID.value

    def test_admin_cancel_releases_card_authorization(self, lifecycle, card_order, gateway, scheduler):
        lifecycle.transition_status(card_order.id, OrderStatus.CANCELED)

        assert gateway.retrieve_authorization(card_order.payment_authorization_id).status == "canceled"
        assert scheduler.scheduled == [(card_order.id, 7)]

    def test_unknown_order(self, lifecycle, catalog_data):
        with pytest.raises(OrderNotFoundError):
            lifecycle.transition_status(999, OrderStatus.SHIPPED)


class TestCancel:
    def test_cancel_pending_order(self, lifecycle, cod_order, scheduler):
        order = lifecycle.cancel(cod_order.id, 1)

        assert order.status == OrderStatus.CANCELED.value
        assert scheduler.scheduled == [(cod_order.id, 7)]

    @pytest.mark.parametrize("status", [OrderStatus.SHIPPED, OrderStatus.DELIVERED])
    def test_cannot_cancel_after_shipping(self, lifecycle, cod_order, scheduler, status):
        lifecycle.transition_status(cod_order.id, status)

        with pytest.raises(InvalidTransitionError):
            lifecycle.cancel(cod_order.id, 1)
        assert scheduler.scheduled == []

    def test_cancel_someone_elses_order(self, lifecycle, cod_order):
        with pytest.raises(PermissionError):
            lifecycle.cancel(cod_order.id, 2)

    def test_cancel_releases_card_authorization(self, lifecycle, card_order, gateway):
        lifecycle.cancel(card_order.id, 1)

        assert gateway.retrieve_authorization(card_order.payment_authorization_id).status == "canceled"

    def test_cancel_survives_gateway_error(self, lifecycle, card_order, gateway, monkeypatch):
        def broken_cancel(authorization_id):
            raise GatewayError("timeout")

        monkeypatch.setattr(gateway, "cancel_authorization", broken_cancel)

        order = lifecycle.cancel(card_order.id, 1)
        assert order.status == OrderStatus.CANCELED.value


class TestDelayedDeletion:
    def test_deletes_order_still_canceled(self, lifecycle, cod_order, order_counts):
        lifecycle.cancel(cod_order.id, 1)

        assert lifecycle.delete_if_still_canceled(cod_order.id) is True
        assert order_counts() == (0, 0)

    def test_keeps_order_moved_out_of_canceled(self, db, lifecycle, cod_order, order_counts):
        lifecycle.cancel(cod_order.id, 1)
        #admin override bypassing the state machine
        db.get(OrderModel, cod_order.id).status = OrderStatus.PROCESSING.value
        db.commit()

        assert lifecycle.delete_if_still_canceled(cod_order.id) is False
        assert order_counts() == (1, 1)

    def test_second_run_is_noop(self, lifecycle, cod_order):
        lifecycle.cancel(cod_order.id, 1)
        lifecycle.delete_if_still_canceled(cod_order.id)

        assert lifecycle.delete_if_still_canceled(cod_order.id) is False


class TestConfirmPayment:
    def test_pending_authorization(self, lifecycle, card_order, notifications):
        result = lifecycle.confirm_payment(card_order.id, 1)

        assert result.confirmed is False
        assert result.payment_status == PaymentStatus.UNPAID
        assert "order.status_updated" not in notifications.names()

    def test_succeeded_authorization(self, lifecycle, card_order, gateway):
        gateway.confirm_authorization(card_order.payment_authorization_id)

        result = lifecycle.confirm_payment(card_order.id, 1)

        assert result.confirmed is True
        assert result.order.payment_status == PaymentStatus.PAID.value
        assert result.order.status == OrderStatus.PROCESSING.value

    def test_already_paid_skips_gateway(self, lifecycle, card_order, gateway, monkeypatch):
        gateway.confirm_authorization(card_order.payment_authorization_id)
        lifecycle.confirm_payment(card_order.id, 1)

        def unreachable(authorization_id):
            raise AssertionError("gateway should not be asked again")

        monkeypatch.setattr(gateway, "retrieve_authorization", unreachable)
        assert lifecycle.confirm_payment(card_order.id, 1).confirmed is True

    def test_requires_action(self, lifecycle, card_order, gateway):
        gateway.set_status(card_order.payment_authorization_id, "requires_action")

        result = lifecycle.confirm_payment(card_order.id, 1)

        assert result.payment_status == PaymentStatus.REQUIRES_ACTION
        assert result.order.status == OrderStatus.PENDING.value

    def test_cash_order_has_no_payment(self, lifecycle, cod_order):
        with pytest.raises(OrderNotFoundError):
            lifecycle.confirm_payment(cod_order.id, 1)


class TestGatewayEvents:
    def test_succeeded_event_marks_paid(self, lifecycle, card_order, notifications):
        event = GatewayEvent("payment_intent.succeeded", card_order.payment_authorization_id, "succeeded")

        order = lifecycle.apply_gateway_event(event)

        assert order.payment_status == PaymentStatus.PAID.value
        assert order.status == OrderStatus.PROCESSING.value
        assert notifications.names()[-1] == "order.status_updated"

    def test_failed_event(self, lifecycle, card_order):
        event = GatewayEvent("payment_intent.payment_failed", card_order.payment_authorization_id)

        order = lifecycle.apply_gateway_event(event)

        assert order.payment_status == PaymentStatus.FAILED.value
        assert order.status == OrderStatus.PENDING.value

    def test_unknown_authorization_is_ignored(self, lifecycle, card_order):
        event = GatewayEvent("payment_intent.succeeded", "pi_does_not_exist")

        assert lifecycle.apply_gateway_event(event) is None

    def test_unhandled_event_type(self, lifecycle, card_order):
        event = GatewayEvent("charge.refunded", card_order.payment_authorization_id)

        assert lifecycle.apply_gateway_event(event) is None
