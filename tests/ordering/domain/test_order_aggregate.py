"""Tests for the Order aggregate: creation, state machine, eligibility and events."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError

from conftest import make_address, make_payment
from ordering.cart.cart import ShippingMethod
from ordering.order.events import OrderCancelled, OrderPlaced, OrderShipped, OrderStatusChanged
from ordering.order.order import CancellationActor, Order, OrderStatus, OrderTotals

NOW = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)


def _order(**overrides):
    values = {
        "owner_id": "cust-001",
        "order_number": "ORD-20260501093000-ABCDEF123456",
        "lines": [
            {"product_id": "prod-001", "name": "Widget", "unit_price": 20.0, "quantity": 2, "line_total": 40.0},
            {"product_id": "prod-002", "name": "Gadget", "unit_price": 15.0, "quantity": 1, "line_total": 15.0},
        ],
        "shipping_address": make_address(),
        "payment": make_payment(),
        "totals": OrderTotals(subtotal=55.0, tax=4.4, shipping_cost=5.99, total=65.39),
        "now": NOW,
    }
    values.update(overrides)
    return Order.create(**values)


def _order_in(status):
    order = _order()
    order.status = status.value
    return order


class TestOrderCreation:
    def test_starts_pending(self):
        order = _order()
        assert order.status == OrderStatus.PENDING.value
        assert order.created_at == NOW

    def test_billing_defaults_to_shipping(self):
        order = _order()
        assert order.billing_address == order.shipping_address

    def test_explicit_billing_address(self):
        billing = make_address(address="1 Billing Rd")
        order = _order(billing_address=billing)
        assert order.billing_address.address == "1 Billing Rd"

    def test_estimated_delivery_from_delivery_days(self):
        order = _order(shipping_method=ShippingMethod.EXPRESS, delivery_days=2)
        assert order.shipping_method == ShippingMethod.EXPRESS.value
        assert order.estimated_delivery == NOW + timedelta(days=2)

    def test_gift_fields(self):
        order = _order(is_gift=True, gift_message="Happy birthday", gift_wrap=True)
        assert order.is_gift
        assert order.gift_message == "Happy birthday"
        assert order.gift_wrap

    def test_order_requires_lines(self):
        with pytest.raises(ValidationError):
            _order(lines=[])

    def test_gift_message_requires_gift(self):
        with pytest.raises(ValidationError):
            _order(gift_message="Enjoy")

    def test_customer_name_from_shipping_address(self):
        assert _order().customer_name == "Ada Lovelace"

    def test_place_raises_order_placed(self):
        order = _order()
        order.place()
        events = order._events
        assert len(events) == 1
        assert isinstance(events[0], OrderPlaced)
        assert events[0].order_number == order.order_number
        assert events[0].total == 65.39
        assert [item["product_id"] for item in json.loads(events[0].items)] == ["prod-001", "prod-002"]


class TestStateMachine:
    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.CONFIRMED, OrderStatus.PROCESSING),
            (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.RETURNED),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
            (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
        ],
    )
    def test_legal_transitions(self, current, target):
        order = _order_in(current)
        order.transition_to(target)
        assert order.status == target.value

    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING, OrderStatus.SHIPPED),
            (OrderStatus.PENDING, OrderStatus.DELIVERED),
            (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
            (OrderStatus.SHIPPED, OrderStatus.PENDING),
            (OrderStatus.CANCELLED, OrderStatus.CONFIRMED),
            (OrderStatus.RETURNED, OrderStatus.DELIVERED),
        ],
    )
    def test_illegal_transitions(self, current, target):
        order = _order_in(current)
        with pytest.raises(ValidationError):
            order.transition_to(target)
        assert order.status == current.value

    @pytest.mark.parametrize(
        "target, field",
        [
            (OrderStatus.CONFIRMED, "confirmed_at"),
            (OrderStatus.CANCELLED, "cancelled_at"),
        ],
    )
    def test_transition_stamps_timestamp(self, target, field):
        order = _order()
        order.transition_to(target, now=NOW + timedelta(hours=1))
        assert getattr(order, field) == NOW + timedelta(hours=1)

    def test_reentering_status_restamps(self):
        order = _order()
        order.transition_to(OrderStatus.CONFIRMED, now=NOW + timedelta(hours=1))
        order.transition_to(OrderStatus.CONFIRMED, now=NOW + timedelta(hours=2))
        assert order.confirmed_at == NOW + timedelta(hours=2)
        assert order.status == OrderStatus.CONFIRMED.value

    def test_transition_raises_status_changed(self):
        order = _order()
        order.transition_to("confirmed")
        event = order._events[0]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == "pending"
        assert event.new_status == "confirmed"


class TestCancellation:
    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
    def test_can_be_cancelled(self, status):
        assert _order_in(status).can_be_cancelled()

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
            OrderStatus.RETURNED,
        ],
    )
    def test_cannot_be_cancelled(self, status):
        assert not _order_in(status).can_be_cancelled()

    def test_cancel(self):
        order = _order_in(OrderStatus.CONFIRMED)
        order.cancel(CancellationActor.ADMIN, now=NOW + timedelta(hours=3))

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancelled_at == NOW + timedelta(hours=3)
        assert order.cancelled_by == CancellationActor.ADMIN.value
        assert not order.can_be_cancelled()

    def test_cancel_raises_order_cancelled(self):
        order = _order()
        order.cancel()
        events = order._events
        cancelled = [event for event in events if isinstance(event, OrderCancelled)]
        assert len(cancelled) == 1
        assert cancelled[0].cancelled_by == "customer"
        assert cancelled[0].owner_id == "cust-001"

    def test_cancel_after_shipping_is_rejected(self):
        order = _order_in(OrderStatus.SHIPPED)
        with pytest.raises(ValidationError):
            order.cancel()
        assert order.cancelled_at is None


class TestReturns:
    def _delivered(self, delivered_at):
        order = _order_in(OrderStatus.DELIVERED)
        order.delivered_at = delivered_at
        return order

    def test_returnable_inside_window(self):
        order = self._delivered(NOW)
        assert order.can_be_returned(NOW + timedelta(days=29))

    def test_returnable_at_exact_boundary(self):
        order = self._delivered(NOW)
        assert order.can_be_returned(NOW + timedelta(days=30))

    def test_not_returnable_once_boundary_crossed(self):
        order = self._delivered(NOW)
        assert not order.can_be_returned(NOW + timedelta(days=30, microseconds=1))

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.PENDING, OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.RETURNED],
    )
    def test_only_delivered_orders_are_returnable(self, status):
        order = _order_in(status)
        order.delivered_at = NOW
        assert not order.can_be_returned(NOW + timedelta(days=1))

    def test_mark_returned(self):
        order = self._delivered(NOW)
        order.mark_returned(now=NOW + timedelta(days=5))
        assert order.status == OrderStatus.RETURNED.value
        assert order.returned_at == NOW + timedelta(days=5)

    def test_mark_returned_outside_window(self):
        order = self._delivered(NOW)
        with pytest.raises(ValidationError):
            order.mark_returned(now=NOW + timedelta(days=31))


class TestShippingAndNotes:
    def test_ship_with_tracking_number(self):
        order = _order_in(OrderStatus.PROCESSING)
        order.ship("TRACK-123")

        assert order.status == OrderStatus.SHIPPED.value
        assert order.tracking_number == "TRACK-123"
        assert order.shipped_at is not None
        shipped = [event for event in order._events if isinstance(event, OrderShipped)]
        assert shipped[0].tracking_number == "TRACK-123"

    def test_ship_without_tracking_number_raises_no_shipped_event(self):
        order = _order_in(OrderStatus.PROCESSING)
        order.ship()
        assert not any(isinstance(event, OrderShipped) for event in order._events)

    def test_add_notes(self):
        order = _order()
        order.add_notes("Leave at the back door")
        assert order.notes == "Leave at the back door"

    def test_record_tracking(self):
        order = _order()
        order.record_tracking("TRACK-999")
        assert order.tracking_number == "TRACK-999"
