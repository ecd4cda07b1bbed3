"""Order aggregate (CQRS) — the record of a checkout and its fulfillment status.

Lines, addresses and totals are snapshots taken at checkout and never
re-derived from the live catalogue. After creation the order only changes
through status transitions and tracking/notes updates; it is never
deleted, cancellation is a status.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED → RETURNED
    CANCELLED (from PENDING, CONFIRMED)
"""

import json
from datetime import timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from ordering.cart.cart import ShippingMethod, Variant, parse_shipping_method
from ordering.domain import ordering
from ordering.order.events import OrderCancelled, OrderPlaced, OrderShipped, OrderStatusChanged
from shared.utils.clock import as_utc, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentMethod(Enum):
    CARD = "card"
    PAYPAL = "paypal"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"
    BANK_TRANSFER = "bank_transfer"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class CancellationActor(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


# State machine transition map. Re-entering the current status is always
# accepted and re-stamps its timestamp.
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

_STATUS_TIMESTAMPS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.PROCESSING: "processing_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
    OrderStatus.RETURNED: "returned_at",
}


def parse_status(status) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {status}"]}) from None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A delivery or billing address captured at checkout time.

    Once recorded on an Order, the address is immutable. It represents where
    the order was shipped, regardless of later changes to the customer profile.
    """

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    company = String(max_length=100)
    address = String(required=True, max_length=255)
    address2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@ordering.value_object(part_of="Order")
class PaymentDescriptor:
    """Result of a payment authorization performed before checkout."""

    method = String(required=True, choices=PaymentMethod)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    last_four = String(max_length=4)
    brand = String(max_length=50)


@ordering.value_object(part_of="Order")
class OrderTotals:
    """Financial summary locked at checkout."""

    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """A cart line frozen at checkout. ``unit_price`` includes the variant adjustment."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    image = String(max_length=1024, default="")
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant = ValueObject(Variant)
    line_total = Float(required=True)

    def as_payload(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "variant": self.variant.signature if self.variant is not None else None,
            "line_total": self.line_total,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    owner_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    lines = HasMany(OrderLine)
    shipping_address = ValueObject(Address, required=True)
    billing_address = ValueObject(Address)
    payment = ValueObject(PaymentDescriptor, required=True)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    totals = ValueObject(OrderTotals)
    coupon_code = String(max_length=100)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)

    confirmed_at = DateTime()
    processing_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    returned_at = DateTime()
    cancelled_by = String(choices=CancellationActor)

    tracking_number = String(max_length=255)
    estimated_delivery = DateTime()
    notes = Text()
    customer_notes = String(max_length=500)
    is_gift = Boolean(default=False)
    gift_message = String(max_length=500)
    gift_wrap = Boolean(default=False)

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def gift_message_requires_gift(self):
        if self.gift_message and not self.is_gift:
            raise ValidationError({"gift_message": ["A gift message needs is_gift"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        owner_id,
        order_number,
        lines,
        shipping_address,
        payment,
        totals,
        billing_address=None,
        shipping_method=ShippingMethod.STANDARD.value,
        delivery_days=None,
        coupon_code=None,
        customer_notes=None,
        is_gift=False,
        gift_message=None,
        gift_wrap=False,
        now=None,
    ):
        """Create a pending order from checkout data.

        ``lines`` are dicts of OrderLine fields. The billing address
        defaults to the shipping address. When ``delivery_days`` is given,
        the estimated delivery is that many days after creation.
        """
        if not lines:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        now = now or utcnow()
        order = cls(
            owner_id=str(owner_id),
            order_number=order_number,
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            payment=payment,
            shipping_method=parse_shipping_method(shipping_method).value,
            totals=totals,
            coupon_code=coupon_code,
            customer_notes=customer_notes,
            is_gift=is_gift,
            gift_message=gift_message,
            gift_wrap=gift_wrap,
            estimated_delivery=now + timedelta(days=delivery_days) if delivery_days is not None else None,
            created_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_lines(OrderLine(**line))
        return order

    @property
    def customer_name(self) -> str:
        return self.shipping_address.full_name

    @property
    def item_payloads(self) -> list[dict]:
        return [line.as_payload() for line in self.lines]

    def place(self):
        """Announce the order. Dispatched when the order is first persisted."""
        self.raise_(
            OrderPlaced(
                order_id=str(self.id),
                order_number=self.order_number,
                owner_id=self.owner_id,
                customer_name=self.customer_name,
                items=json.dumps(self.item_payloads),
                subtotal=self.totals.subtotal,
                discount=self.totals.discount,
                tax=self.totals.tax,
                shipping_cost=self.totals.shipping_cost,
                total=self.totals.total,
                shipping_method=self.shipping_method,
                estimated_delivery=self.estimated_delivery,
            )
        )

    # -------------------------------------------------------------------
    # Eligibility
    # -------------------------------------------------------------------
    def can_be_cancelled(self) -> bool:
        return OrderStatus(self.status) in _CANCELLABLE_STATES

    def can_be_returned(self, now=None, window_days=30) -> bool:
        """Delivered, and no more than ``window_days`` since delivery."""
        if self.status != OrderStatus.DELIVERED.value or self.delivered_at is None:
            return False
        now = now or utcnow()
        return now - as_utc(self.delivered_at) <= timedelta(days=window_days)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def transition_to(self, target_status, now=None):
        """Move to ``target_status`` and stamp its timestamp."""
        target = parse_status(target_status)
        current = OrderStatus(self.status)
        if target != current and target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        now = now or utcnow()
        field = _STATUS_TIMESTAMPS.get(target)
        if field is not None:
            setattr(self, field, now)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target.value,
            )
        )

    def cancel(self, cancelled_by=CancellationActor.CUSTOMER.value, now=None):
        if not self.can_be_cancelled():
            raise ValidationError({"status": [f"Order cannot be cancelled in {self.status} state"]})

        self.transition_to(OrderStatus.CANCELLED, now=now)
        self.cancelled_by = CancellationActor(cancelled_by).value

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                owner_id=self.owner_id,
                customer_name=self.customer_name,
                cancelled_by=self.cancelled_by,
                total=self.totals.total,
                items=json.dumps(self.item_payloads),
            )
        )

    def ship(self, tracking_number=None, now=None):
        self.transition_to(OrderStatus.SHIPPED, now=now)
        if not tracking_number:
            return

        self.tracking_number = tracking_number
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                order_number=self.order_number,
                owner_id=self.owner_id,
                customer_name=self.customer_name,
                tracking_number=tracking_number,
                shipping_method=self.shipping_method,
                estimated_delivery=self.estimated_delivery,
            )
        )

    def mark_returned(self, now=None, window_days=30):
        now = now or utcnow()
        if not self.can_be_returned(now, window_days):
            raise ValidationError({"status": ["Order is not eligible for return"]})
        self.transition_to(OrderStatus.RETURNED, now=now)

    # -------------------------------------------------------------------
    # Tracking and notes
    # -------------------------------------------------------------------
    def record_tracking(self, tracking_number):
        self.tracking_number = tracking_number
        self.updated_at = utcnow()

    def add_notes(self, notes):
        self.notes = notes
        self.updated_at = utcnow()
