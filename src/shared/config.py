"""Runtime settings for the commerce core.

Defaults reproduce the storefront's published rates. Every value can be
overridden from the environment (``SHOPSTREAM_*`` variables), following
the same env-driven configuration as the logging and adapter setup.
"""

import os
from enum import Enum

from pydantic import BaseModel, Field


class FixedDiscountPolicy(Enum):
    """What to do when a fixed-amount coupon exceeds the cart subtotal."""

    CAP_AT_SUBTOTAL = "cap_at_subtotal"
    ALLOW_NEGATIVE_TOTAL = "allow_negative_total"
    REJECT = "reject"


DEFAULT_SHIPPING_RATES = {
    "standard": 5.99,
    "express": 12.99,
    "overnight": 24.99,
}

DEFAULT_DELIVERY_DAYS = {
    "standard": 5,
    "express": 2,
    "overnight": 1,
}


class CommerceSettings(BaseModel):
    tax_rate: float = Field(default=0.08, ge=0.0)
    shipping_rates: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_SHIPPING_RATES))
    delivery_days: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_DELIVERY_DAYS))
    default_shipping_method: str = "standard"
    guest_cart_ttl_hours: int = Field(default=24, ge=1)
    # Seconds between expired guest cart sweeps while the app runs; 0 disables the sweeper
    guest_cart_sweep_seconds: float = Field(default=3600, ge=0)
    return_window_days: int = Field(default=30, ge=0)
    fixed_discount_policy: FixedDiscountPolicy = FixedDiscountPolicy.CAP_AT_SUBTOTAL
    order_number_attempts: int = Field(default=3, ge=1)
    database_url: str | None = None

    def shipping_rate_for(self, method: str) -> float:
        """Flat rate for a shipping method; unknown methods pay the standard rate."""
        return self.shipping_rates.get(method, self.shipping_rates[self.default_shipping_method])

    def delivery_days_for(self, method: str) -> int:
        return self.delivery_days.get(method, self.delivery_days[self.default_shipping_method])

    @classmethod
    def from_env(cls) -> "CommerceSettings":
        overrides = {}
        if tax_rate := os.getenv("SHOPSTREAM_TAX_RATE"):
            overrides["tax_rate"] = float(tax_rate)
        if ttl := os.getenv("SHOPSTREAM_GUEST_CART_TTL_HOURS"):
            overrides["guest_cart_ttl_hours"] = int(ttl)
        if sweep := os.getenv("SHOPSTREAM_GUEST_CART_SWEEP_SECONDS"):
            overrides["guest_cart_sweep_seconds"] = float(sweep)
        if window := os.getenv("SHOPSTREAM_RETURN_WINDOW_DAYS"):
            overrides["return_window_days"] = int(window)
        if policy := os.getenv("SHOPSTREAM_FIXED_DISCOUNT_POLICY"):
            overrides["fixed_discount_policy"] = FixedDiscountPolicy(policy.lower())
        if database_url := os.getenv("SHOPSTREAM_DATABASE_URL"):
            overrides["database_url"] = database_url
        return cls(**overrides)
