"""CouponApplier — discount amount for a coupon against a subtotal.

    percentage: subtotal * discount / 100
    fixed:      discount

The discount is never negative. A fixed discount larger than the subtotal
is resolved by ``FixedDiscountPolicy``: capped at the subtotal by default,
passed through unchanged (the cart total may then go negative), or
rejected outright.
"""

import structlog
from protean.exceptions import ValidationError

from ordering.cart.cart import Coupon, CouponKind
from shared.config import FixedDiscountPolicy

logger = structlog.get_logger(__name__)


class CouponApplier:
    def __init__(self, fixed_discount_policy: FixedDiscountPolicy = FixedDiscountPolicy.CAP_AT_SUBTOTAL):
        self.fixed_discount_policy = FixedDiscountPolicy(fixed_discount_policy)

    def compute_discount(self, subtotal: float, coupon: Coupon | None) -> float:
        if coupon is None:
            return 0.0

        try:
            kind = CouponKind(coupon.kind)
        except ValueError:
            raise ValidationError({"coupon": [f"Unsupported coupon kind: {coupon.kind}"]}) from None

        if kind == CouponKind.PERCENTAGE:
            return max(0.0, subtotal * coupon.discount / 100)

        discount = max(0.0, coupon.discount)
        if discount <= subtotal:
            return discount

        if self.fixed_discount_policy == FixedDiscountPolicy.REJECT:
            raise ValidationError(
                {"coupon": [f"Coupon {coupon.code} discount {discount:.2f} exceeds subtotal {subtotal:.2f}"]}
            )
        if self.fixed_discount_policy == FixedDiscountPolicy.CAP_AT_SUBTOTAL:
            logger.debug(
                "Fixed coupon capped at subtotal", coupon_code=coupon.code, discount=discount, subtotal=subtotal
            )
            return max(0.0, subtotal)
        return discount
