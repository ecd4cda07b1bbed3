"""Tests for the Cart aggregate: line identity, mutations, coupons, events and expiry."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError

from ordering.cart.cart import Cart, CartTotals, CouponKind, ShippingMethod, Variant
from ordering.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    ShippingMethodChanged,
)

SIZE_M = Variant(name="Size", value="M")
SIZE_L = Variant(name="Size", value="L", price_adjustment=2.0)


def _cart():
    cart = Cart.create("cust-001")
    return cart


class TestCartCreation:
    def test_create_registered_cart(self):
        cart = _cart()
        assert cart.owner_id == "cust-001"
        assert cart.is_guest is False
        assert cart.expires_at is None
        assert cart.is_empty
        assert cart.shipping_method == ShippingMethod.STANDARD.value
        assert cart.totals == CartTotals()

    def test_guest_cart_expires_24_hours_after_creation(self):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        cart = Cart.create("sess-001", guest=True, now=now)
        assert cart.expires_at == now + timedelta(hours=24)
        assert not cart.is_expired(now + timedelta(hours=23))
        assert cart.is_expired(now + timedelta(hours=24))

    def test_registered_cart_never_expires(self):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        cart = Cart.create("cust-001", now=now)
        assert not cart.is_expired(now + timedelta(days=365))

    def test_guest_cart_without_expiry_is_invalid(self):
        with pytest.raises(ValidationError):
            Cart(owner_id="sess-001", is_guest=True)


class TestLineIdentity:
    def test_same_product_same_variant_merges(self):
        cart = _cart()
        cart.add_item("prod-001", 2, SIZE_M)
        cart.add_item("prod-001", 3, SIZE_M)
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 5

    def test_same_product_without_variant_merges(self):
        cart = _cart()
        cart.add_item("prod-001", 1)
        cart.add_item("prod-001", 1)
        assert len(cart.lines) == 1
        assert cart.item_count == 2

    def test_different_variants_are_separate_lines(self):
        cart = _cart()
        cart.add_item("prod-001", 1, SIZE_M)
        cart.add_item("prod-001", 1, SIZE_L)
        cart.add_item("prod-001", 1)
        assert len(cart.lines) == 3

    def test_price_adjustment_is_not_part_of_identity(self):
        cart = _cart()
        cart.add_item("prod-001", 1, Variant(name="Size", value="L", price_adjustment=2.0))
        cart.add_item("prod-001", 1, Variant(name="Size", value="L", price_adjustment=9.0))
        assert len(cart.lines) == 1

    def test_variant_signature(self):
        assert SIZE_M.signature == "Size=M"

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_add_rejects_non_positive_quantity(self, quantity):
        cart = _cart()
        with pytest.raises(ValidationError):
            cart.add_item("prod-001", quantity)


class TestQuantityUpdates:
    def test_update_sets_exact_quantity(self):
        cart = _cart()
        cart.add_item("prod-001", 2)
        cart.update_quantity("prod-001", 7)
        assert cart.lines[0].quantity == 7

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_update_to_zero_or_less_removes_line(self, quantity):
        cart = _cart()
        cart.add_item("prod-001", 2)
        cart.update_quantity("prod-001", quantity)
        assert cart.is_empty

    def test_update_matches_on_variant(self):
        cart = _cart()
        cart.add_item("prod-001", 1, SIZE_M)
        cart.add_item("prod-001", 1, SIZE_L)
        cart.update_quantity("prod-001", 4, SIZE_L)
        assert cart.find_line("prod-001", SIZE_M).quantity == 1
        assert cart.find_line("prod-001", SIZE_L).quantity == 4

    def test_update_missing_line_raises_not_found(self):
        cart = _cart()
        cart.add_item("prod-001", 1, SIZE_M)
        with pytest.raises(ObjectNotFoundError):
            cart.update_quantity("prod-001", 2)

    def test_remove_deletes_only_matching_line(self):
        cart = _cart()
        cart.add_item("prod-001", 1, SIZE_M)
        cart.add_item("prod-002", 1)
        cart.remove_item("prod-001", SIZE_M)
        assert [str(line.product_id) for line in cart.lines] == ["prod-002"]

    def test_remove_missing_line_raises_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            _cart().remove_item("prod-001")


class TestCouponsAndShipping:
    def test_apply_coupon(self):
        cart = _cart()
        cart.apply_coupon("SAVE10", 10)
        assert cart.coupon.code == "SAVE10"
        assert cart.coupon.kind == CouponKind.PERCENTAGE.value

    def test_new_coupon_replaces_previous(self):
        cart = _cart()
        cart.apply_coupon("SAVE10", 10)
        cart.apply_coupon("FIVEOFF", 5, "fixed")
        assert cart.coupon.code == "FIVEOFF"
        assert cart.coupon.kind == CouponKind.FIXED.value

    def test_unknown_coupon_kind_is_rejected(self):
        with pytest.raises(ValidationError):
            _cart().apply_coupon("BOGUS", 10, "bogo")

    def test_percentage_above_100_is_rejected(self):
        with pytest.raises(ValidationError):
            _cart().apply_coupon("TOOMUCH", 150)

    def test_negative_discount_is_rejected(self):
        with pytest.raises(ValidationError):
            _cart().apply_coupon("NEG", -5, "fixed")

    def test_empty_code_is_rejected(self):
        with pytest.raises(ValidationError):
            _cart().apply_coupon("", 10)

    def test_remove_coupon(self):
        cart = _cart()
        cart.apply_coupon("SAVE10", 10)
        cart.remove_coupon()
        assert cart.coupon is None

    def test_set_shipping_method(self):
        cart = _cart()
        cart.set_shipping_method("express")
        assert cart.shipping_method == ShippingMethod.EXPRESS.value

    def test_unknown_shipping_method_is_rejected(self):
        with pytest.raises(ValidationError):
            _cart().set_shipping_method("drone")

    def test_clear_empties_lines_coupon_and_totals(self):
        cart = _cart()
        cart.add_item("prod-001", 2)
        cart.apply_coupon("SAVE10", 10)
        cart.reprice(CartTotals(subtotal=40.0, discount=4.0, tax=2.88, shipping=5.99, total=44.87))

        cart.clear()

        assert cart.is_empty
        assert cart.coupon is None
        assert cart.totals == CartTotals()


class TestCartEvents:
    def test_every_mutation_raises_an_event(self):
        cart = _cart()
        cart.add_item("prod-001", 2)
        cart.update_quantity("prod-001", 3)
        cart.apply_coupon("SAVE10", 10)
        cart.remove_coupon()
        cart.set_shipping_method("overnight")
        cart.remove_item("prod-001")
        cart.clear()

        assert [type(event) for event in cart._events] == [
            CartItemAdded,
            CartQuantityUpdated,
            CartCouponApplied,
            CartCouponRemoved,
            ShippingMethodChanged,
            CartItemRemoved,
            CartCleared,
        ]

    def test_item_added_event_carries_line_quantity(self):
        cart = _cart()
        cart.add_item("prod-001", 2, SIZE_M)
        cart.add_item("prod-001", 3, SIZE_M)
        event = cart._events[-1]
        assert event.quantity == 3
        assert event.line_quantity == 5
        assert event.variant_signature == "Size=M"

    def test_coupon_event_records_replaced_code(self):
        cart = _cart()
        cart.apply_coupon("FIRST", 10)
        cart.apply_coupon("SECOND", 20)
        assert cart._events[-1].replaced_code == "FIRST"

    def test_removing_absent_coupon_raises_nothing(self):
        cart = _cart()
        cart.remove_coupon()
        assert cart._events == []
