"""Cart pricing — a pure recompute of the derived totals.

    line amount = (unit price + variant adjustment) * quantity
    subtotal    = sum of line amounts (lines whose product is unknown add 0)
    discount    = CouponApplier.compute_discount(subtotal, coupon)
    shipping    = flat rate for the shipping method (unknown -> standard)
    tax         = (subtotal - discount) * tax rate, never below zero
    total       = subtotal - discount + tax + shipping

Every amount is rounded to cents as it is produced, so the invariant
``total == subtotal - discount + tax + shipping`` holds on the rounded
figures.

An empty cart prices to all zeros, shipping included. This departs from
the general recompute rule (rate-table shipping for the cart's method on
every recompute, lines or not): the flat rate is charged from the first
line onwards.
"""

from collections.abc import Mapping

from catalogue.product.product import ProductSnapshot
from ordering.cart.cart import Cart, CartLine, CartTotals, Coupon
from ordering.cart.coupons import CouponApplier
from shared.config import CommerceSettings


def cents(amount: float) -> float:
    return round(amount + 0.0, 2)


def unit_price(line: CartLine, product: ProductSnapshot) -> float:
    """Catalogue price plus the variant adjustment, preferring the catalogue's adjustment."""
    fallback = line.variant.price_adjustment if line.variant is not None else 0.0
    return product.price + product.adjustment_for(line.variant_signature, fallback)


def line_amount(line: CartLine, product: ProductSnapshot) -> float:
    return unit_price(line, product) * line.quantity


def compute_totals(
    subtotal: float,
    coupon: Coupon | None,
    shipping_method: str,
    settings: CommerceSettings,
    applier: CouponApplier,
) -> CartTotals:
    subtotal = cents(subtotal)
    discount = cents(applier.compute_discount(subtotal, coupon))
    shipping = cents(settings.shipping_rate_for(shipping_method))
    tax = cents(max(0.0, subtotal - discount) * settings.tax_rate)
    total = cents(subtotal - discount + tax + shipping)
    return CartTotals(subtotal=subtotal, discount=discount, tax=tax, shipping=shipping, total=total)


def recompute(
    cart: Cart,
    products: Mapping[str, ProductSnapshot],
    settings: CommerceSettings,
    applier: CouponApplier,
) -> CartTotals:
    if cart.is_empty:
        return CartTotals()

    subtotal = sum(
        line_amount(line, products[str(line.product_id)]) for line in cart.lines if str(line.product_id) in products
    )
    return compute_totals(subtotal, cart.coupon, cart.shipping_method, settings, applier)
