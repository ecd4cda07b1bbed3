"""Domain events for the Cart aggregate."""

from protean.fields import Boolean, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or an existing line grew."""

    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_signature = String(max_length=255, default="")
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartQuantityUpdated:
    """A line's quantity was set to a new value."""

    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_signature = String(max_length=255, default="")
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_signature = String(max_length=255, default="")


@ordering.event(part_of="Cart")
class CartCouponApplied:
    """A coupon was applied, replacing any previous one."""

    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=100)
    replaced_code = String(max_length=100)


@ordering.event(part_of="Cart")
class CartCouponRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=100)


@ordering.event(part_of="Cart")
class ShippingMethodChanged:
    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    previous_method = String(max_length=50)
    new_method = String(required=True, max_length=50)


@ordering.event(part_of="Cart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class CartsMerged:
    """A guest cart's lines were replayed into a registered customer's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    lines_merged = Integer(required=True)
    from_guest_session = Boolean(default=False)
