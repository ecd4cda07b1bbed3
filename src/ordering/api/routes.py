"""FastAPI routes for the Ordering domain — cart and orders.

The identity collaborator authenticates upstream and forwards the user as
headers: ``X-User-Id`` and ``X-User-Role`` (``customer`` by default).
Anonymous shoppers send ``X-Session-Id`` instead and get a guest cart.
A session id only ever addresses a guest cart, never a customer's.
"""

from typing import Annotated, NamedTuple

from fastapi import APIRouter, Depends, Header, Query, Request
from protean.exceptions import ValidationError

from bootstrap import Container
from ordering.api.schemas import (
    AddCartItemRequest,
    ApplyCouponRequest,
    CheckoutRequest,
    CountResponse,
    MergeCartRequest,
    SetShippingMethodRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    cart_response,
    order_page_response,
    order_response,
)
from ordering.cart.cart import Variant
from ordering.order.lifecycle import MAX_PAGE_SIZE
from shared.errors import Forbidden
from shared.identity import Actor, Role


class CartOwner(NamedTuple):
    owner_id: str
    guest: bool


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_container(request: Request) -> Container:
    return request.app.state.container


def current_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str, Header()] = Role.CUSTOMER.value,
) -> Actor:
    if not x_user_id:
        raise Forbidden({"user": ["Authentication required"]})
    if x_user_role not in (Role.CUSTOMER.value, Role.ADMIN.value):
        raise Forbidden({"user": [f"Unknown role: {x_user_role}"]})
    return Actor(user_id=x_user_id, role=Role(x_user_role))


def cart_owner(
    x_user_id: Annotated[str | None, Header()] = None,
    x_session_id: Annotated[str | None, Header()] = None,
) -> CartOwner:
    """The cart's owner: the signed-in user, or a guest session."""
    if x_user_id:
        return CartOwner(x_user_id, guest=False)
    if x_session_id:
        return CartOwner(x_session_id, guest=True)
    raise Forbidden({"user": ["A user id or guest session id is required"]})


ContainerDep = Annotated[Container, Depends(get_container)]
ActorDep = Annotated[Actor, Depends(current_actor)]
OwnerDep = Annotated[CartOwner, Depends(cart_owner)]


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


def _cart(container: Container, owner: CartOwner) -> dict:
    return cart_response(container.cart_engine.view(owner.owner_id, guest=owner.guest))


@cart_router.get("")
async def get_cart(owner: OwnerDep, container: ContainerDep) -> dict:
    return _cart(container, owner)


@cart_router.get("/count", response_model=CountResponse)
async def get_cart_count(owner: OwnerDep, container: ContainerDep) -> CountResponse:
    return CountResponse(count=container.cart_engine.item_count(owner.owner_id, guest=owner.guest))


@cart_router.post("/items", status_code=201)
async def add_cart_item(body: AddCartItemRequest, owner: OwnerDep, container: ContainerDep) -> dict:
    container.cart_engine.add_item(
        owner.owner_id, body.product_id, body.quantity, body.domain_variant, guest=owner.guest
    )
    return _cart(container, owner)


@cart_router.put("/items/{product_id}")
async def update_cart_item(
    product_id: str, body: UpdateCartItemRequest, owner: OwnerDep, container: ContainerDep
) -> dict:
    container.cart_engine.update_quantity(
        owner.owner_id, product_id, body.quantity, body.domain_variant, guest=owner.guest
    )
    return _cart(container, owner)


@cart_router.delete("/items/{product_id}")
async def remove_cart_item(
    product_id: str,
    owner: OwnerDep,
    container: ContainerDep,
    variant_name: str | None = None,
    variant_value: str | None = None,
) -> dict:
    variant = None
    if variant_name is not None or variant_value is not None:
        if not (variant_name and variant_value):
            raise ValidationError({"variant": ["Both variant_name and variant_value are required"]})
        variant = Variant(name=variant_name, value=variant_value)

    container.cart_engine.remove_item(owner.owner_id, product_id, variant, guest=owner.guest)
    return _cart(container, owner)


@cart_router.delete("")
async def clear_cart(owner: OwnerDep, container: ContainerDep) -> dict:
    container.cart_engine.clear(owner.owner_id, guest=owner.guest)
    return _cart(container, owner)


@cart_router.post("/coupon")
async def apply_coupon(body: ApplyCouponRequest, owner: OwnerDep, container: ContainerDep) -> dict:
    container.cart_engine.apply_coupon(owner.owner_id, body.code, body.discount, body.kind, guest=owner.guest)
    return _cart(container, owner)


@cart_router.delete("/coupon")
async def remove_coupon(owner: OwnerDep, container: ContainerDep) -> dict:
    container.cart_engine.remove_coupon(owner.owner_id, guest=owner.guest)
    return _cart(container, owner)


@cart_router.put("/shipping")
async def set_shipping_method(body: SetShippingMethodRequest, owner: OwnerDep, container: ContainerDep) -> dict:
    container.cart_engine.set_shipping_method(owner.owner_id, body.shipping_method, guest=owner.guest)
    return _cart(container, owner)


@cart_router.get("/validate")
async def validate_cart(owner: OwnerDep, container: ContainerDep) -> dict:
    return container.cart_engine.validate_stock(owner.owner_id, guest=owner.guest).model_dump()


@cart_router.post("/merge")
async def merge_cart(body: MergeCartRequest, actor: ActorDep, container: ContainerDep) -> dict:
    if body.session_id:
        container.cart_engine.merge_guest_session(actor.user_id, body.session_id)
    else:
        container.cart_engine.merge_cart(actor.user_id, body.to_snapshot())
    return _cart(container, CartOwner(actor.user_id, guest=False))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201)
async def checkout(body: CheckoutRequest, actor: ActorDep, container: ContainerDep) -> dict:
    order = container.checkout.checkout(
        actor.user_id,
        shipping_address=body.shipping_address.to_domain(),
        billing_address=body.billing_address.to_domain() if body.billing_address else None,
        payment=body.payment.to_domain(),
        options=body.to_options(),
    )
    return order_response(order)


@order_router.get("")
async def list_orders(
    actor: ActorDep,
    container: ContainerDep,
    status: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
) -> dict:
    orders = container.lifecycle.list_orders(actor.user_id, status=status, page=page, limit=limit)
    return order_page_response(orders)


@order_router.get("/{order_id}")
async def get_order(order_id: str, actor: ActorDep, container: ContainerDep) -> dict:
    return order_response(container.lifecycle.get_order(order_id, actor))


@order_router.put("/{order_id}/cancel")
async def cancel_order(order_id: str, actor: ActorDep, container: ContainerDep) -> dict:
    return order_response(container.lifecycle.cancel_order(order_id, actor))


@order_router.put("/{order_id}/status")
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, actor: ActorDep, container: ContainerDep
) -> dict:
    order = container.lifecycle.update_status(
        order_id,
        body.status,
        tracking_number=body.tracking_number,
        notes=body.notes,
        actor=actor,
    )
    return order_response(order)
