"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
domain models they are converted into.
"""

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from ordering.cart.cart import Variant
from ordering.cart.service import CartLineView, CartView, GuestCartLine, GuestCartSnapshot, GuestCoupon
from ordering.checkout.saga import CheckoutOptions
from ordering.order.order import Address, Order, PaymentDescriptor
from ordering.order.repository import OrderPage


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class VariantSchema(BaseModel):
    name: str
    value: str
    price_adjustment: float = 0.0

    def to_domain(self) -> Variant:
        return Variant(name=self.name, value=self.value, price_adjustment=self.price_adjustment)


def _variant(schema: VariantSchema | None) -> Variant | None:
    return schema.to_domain() if schema is not None else None


class AddressSchema(BaseModel):
    first_name: str
    last_name: str
    company: str | None = None
    address: str
    address2: str | None = None
    city: str
    state: str
    zip_code: str
    country: str
    phone: str | None = None

    def to_domain(self) -> Address:
        return Address(**self.model_dump())


class PaymentSchema(BaseModel):
    method: str
    status: str = "pending"
    transaction_id: str | None = None
    last_four: str | None = None
    brand: str | None = None

    def to_domain(self) -> PaymentDescriptor:
        return PaymentDescriptor(**self.model_dump())


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    variant: VariantSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 2,
                    "variant": {"name": "Size", "value": "M", "price_adjustment": 0.0},
                }
            ]
        }
    }

    @property
    def domain_variant(self) -> Variant | None:
        return _variant(self.variant)


class UpdateCartItemRequest(BaseModel):
    quantity: int
    variant: VariantSchema | None = None

    @property
    def domain_variant(self) -> Variant | None:
        return _variant(self.variant)


class ApplyCouponRequest(BaseModel):
    code: str
    discount: float = Field(ge=0)
    kind: str = "percentage"


class SetShippingMethodRequest(BaseModel):
    shipping_method: str


class GuestCartLineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    variant: VariantSchema | None = None


class GuestCouponSchema(BaseModel):
    code: str
    discount: float = Field(ge=0)
    kind: str = "percentage"


class MergeCartRequest(BaseModel):
    """Either a stored guest session to merge, or the guest cart contents."""

    session_id: str | None = None
    lines: list[GuestCartLineSchema] = Field(default_factory=list)
    coupon: GuestCouponSchema | None = None
    shipping_method: str | None = None

    def to_snapshot(self) -> GuestCartSnapshot:
        return GuestCartSnapshot(
            lines=[
                GuestCartLine(product_id=line.product_id, quantity=line.quantity, variant=_variant(line.variant))
                for line in self.lines
            ],
            coupon=GuestCoupon(**self.coupon.model_dump()) if self.coupon is not None else None,
            shipping_method=self.shipping_method,
        )


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment: PaymentSchema
    shipping_method: str | None = None
    customer_notes: str | None = None
    is_gift: bool = False
    gift_message: str | None = None
    gift_wrap: bool = False

    def to_options(self) -> CheckoutOptions:
        return CheckoutOptions(
            shipping_method=self.shipping_method,
            customer_notes=self.customer_notes,
            is_gift=self.is_gift,
            gift_message=self.gift_message,
            gift_wrap=self.gift_wrap,
        )


class UpdateOrderStatusRequest(BaseModel):
    status: str
    tracking_number: str | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CountResponse(BaseModel):
    count: int


def _variant_dict(variant: Variant | None) -> dict | None:
    return variant.to_dict() if variant is not None else None


def _line_response(line: CartLineView) -> dict:
    return {**line.model_dump(exclude={"variant"}), "variant": _variant_dict(line.variant)}


def cart_response(view: CartView) -> dict:
    cart = view.cart
    return jsonable_encoder(
        {
            "owner_id": cart.owner_id,
            "is_guest": cart.is_guest,
            "lines": [_line_response(line) for line in view.lines],
            "coupon": cart.coupon.to_dict() if cart.coupon is not None else None,
            "shipping_method": cart.shipping_method,
            "totals": cart.totals.to_dict(),
            "item_count": view.item_count,
            "expires_at": cart.expires_at,
            "updated_at": cart.updated_at,
        }
    )


def order_response(order: Order) -> dict:
    return jsonable_encoder(order.to_dict())


def order_page_response(page: OrderPage) -> dict:
    return {
        "orders": [order_response(order) for order in page.orders],
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "pages": page.pages,
        },
    }
