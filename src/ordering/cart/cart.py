"""Cart aggregate (CQRS) — one active cart per owner (customer or guest session).

A line's identity is the pair (product_id, variant signature): adding the
same product with the same variant grows the existing line instead of
creating a second one.

Registered customers and guest sessions live in separate key spaces: a
cart is found by ``(owner_id, is_guest)``, so a guest session id can never
address a customer's cart even when the two strings are equal.

Totals are derived. The aggregate only accepts them from the pricing
function through ``reprice()``; every mutator in the application service
ends with a recompute before the cart is saved.
"""

from datetime import datetime, timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from ordering.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    ShippingMethodChanged,
)
from ordering.domain import ordering
from shared.utils.clock import as_utc, utcnow


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"


class CouponKind(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def parse_shipping_method(method) -> ShippingMethod:
    try:
        return ShippingMethod(method)
    except ValueError:
        raise ValidationError({"shipping_method": [f"Unknown shipping method: {method}"]}) from None


def parse_coupon_kind(kind) -> CouponKind:
    try:
        return CouponKind(kind)
    except ValueError:
        raise ValidationError({"kind": [f"Unknown coupon kind: {kind}"]}) from None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object
class Variant:
    """A variant selection such as Size=M, with its price adjustment."""

    name = String(required=True, max_length=100)
    value = String(required=True, max_length=100)
    price_adjustment = Float(default=0.0)

    @property
    def signature(self) -> str:
        return f"{self.name}={self.value}"


def variant_signature(variant: Variant | None) -> str:
    return variant.signature if variant is not None else ""


@ordering.value_object(part_of="Cart")
class Coupon:
    code = String(required=True, max_length=100)
    discount = Float(required=True, min_value=0.0)
    kind = String(choices=CouponKind, default=CouponKind.PERCENTAGE.value)

    @invariant.post
    def percentage_cannot_exceed_100(self):
        if self.kind == CouponKind.PERCENTAGE.value and self.discount is not None and self.discount > 100:
            raise ValidationError({"discount": ["Percentage discount cannot exceed 100"]})


@ordering.value_object(part_of="Cart")
class CartTotals:
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping = Float(default=0.0)
    total = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    variant = ValueObject(Variant)
    added_at = DateTime()
    modified_at = DateTime()

    @property
    def variant_signature(self) -> str:
        return variant_signature(self.variant)

    def matches(self, product_id, variant: Variant | None) -> bool:
        return str(self.product_id) == str(product_id) and self.variant_signature == variant_signature(variant)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Cart:
    owner_id = Identifier(required=True)
    is_guest = Boolean(default=False)
    lines = HasMany(CartLine)
    coupon = ValueObject(Coupon)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    totals = ValueObject(CartTotals)
    created_at = DateTime()
    updated_at = DateTime()
    last_activity = DateTime()
    expires_at = DateTime()

    @invariant.post
    def guest_cart_must_expire(self):
        if self.is_guest and self.expires_at is None:
            raise ValidationError({"expires_at": ["A guest cart needs an expiry"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id, guest=False, guest_ttl=timedelta(hours=24), now=None):
        now = now or utcnow()
        return cls(
            owner_id=str(owner_id),
            is_guest=guest,
            shipping_method=ShippingMethod.STANDARD.value,
            totals=CartTotals(),
            created_at=now,
            updated_at=now,
            last_activity=now,
            expires_at=now + guest_ttl if guest else None,
        )

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def is_expired(self, as_of: datetime) -> bool:
        return self.is_guest and self.expires_at is not None and as_utc(self.expires_at) <= as_of

    def find_line(self, product_id, variant: Variant | None = None) -> CartLine | None:
        return next((line for line in self.lines if line.matches(product_id, variant)), None)

    def _touch(self, now=None):
        now = now or utcnow()
        self.updated_at = now
        self.last_activity = now
        return now

    def _missing_line(self, product_id):
        return ObjectNotFoundError({"item": [f"Product {product_id} is not in the cart"]})

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, variant: Variant | None = None):
        """Add ``quantity`` of a product, growing the line if it already exists."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = self._touch()
        line = self.find_line(product_id, variant)
        if line is not None:
            line.quantity += quantity
            line.modified_at = now
        else:
            line = CartLine(
                product_id=str(product_id), quantity=quantity, variant=variant, added_at=now, modified_at=now
            )
            self.add_lines(line)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                owner_id=self.owner_id,
                product_id=str(product_id),
                variant_signature=variant_signature(variant),
                quantity=quantity,
                line_quantity=line.quantity,
            )
        )

    def update_quantity(self, product_id, quantity, variant: Variant | None = None):
        """Set a line's quantity exactly. Zero or less removes the line."""
        line = self.find_line(product_id, variant)
        if line is None:
            raise self._missing_line(product_id)

        if quantity <= 0:
            self.remove_item(product_id, variant)
            return

        previous_quantity = line.quantity
        now = self._touch()
        line.quantity = quantity
        line.modified_at = now

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                owner_id=self.owner_id,
                product_id=str(product_id),
                variant_signature=variant_signature(variant),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id, variant: Variant | None = None):
        line = self.find_line(product_id, variant)
        if line is None:
            raise self._missing_line(product_id)

        self.remove_lines(line)
        self._touch()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                owner_id=self.owner_id,
                product_id=str(product_id),
                variant_signature=variant_signature(variant),
            )
        )

    # -------------------------------------------------------------------
    # Coupon and shipping
    # -------------------------------------------------------------------
    def apply_coupon(self, code, discount, kind=CouponKind.PERCENTAGE.value):
        """Apply a coupon, replacing the current one. The code is not checked against a registry."""
        kind = parse_coupon_kind(kind)
        if not code:
            raise ValidationError({"code": ["Coupon code is required"]})
        if discount < 0:
            raise ValidationError({"discount": ["Discount cannot be negative"]})

        replaced = self.coupon.code if self.coupon else None
        self.coupon = Coupon(code=code, discount=discount, kind=kind.value)
        self._touch()

        self.raise_(
            CartCouponApplied(cart_id=str(self.id), owner_id=self.owner_id, coupon_code=code, replaced_code=replaced)
        )

    def remove_coupon(self):
        if self.coupon is None:
            return

        code = self.coupon.code
        self.coupon = None
        self._touch()

        self.raise_(CartCouponRemoved(cart_id=str(self.id), owner_id=self.owner_id, coupon_code=code))

    def set_shipping_method(self, method):
        method = parse_shipping_method(method)

        previous = self.shipping_method
        self.shipping_method = method.value
        self._touch()

        self.raise_(
            ShippingMethodChanged(
                cart_id=str(self.id),
                owner_id=self.owner_id,
                previous_method=previous,
                new_method=method.value,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def clear(self):
        """Empty the cart: no lines, no coupon, zero totals."""
        for line in list(self.lines):
            self.remove_lines(line)
        self.coupon = None
        self.totals = CartTotals()
        self._touch()

        self.raise_(CartCleared(cart_id=str(self.id), owner_id=self.owner_id))

    def reprice(self, totals: CartTotals):
        self.totals = totals
