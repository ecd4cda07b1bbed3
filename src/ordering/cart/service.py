"""CartPricingEngine — cart operations with recompute-on-every-mutation.

Each operation runs under the cart's lock (single writer per cart), loads
the cart, applies one aggregate method, recomputes totals from fresh
catalogue snapshots and saves. Saving through the repository commits the
unit of work, which dispatches the events the cart raised. The cart is
created lazily by the operations that add content to it.

Every operation addresses a cart by owner id plus ``guest``: registered
customers and guest sessions never share a cart, a lock, or a lookup.
"""

from datetime import timedelta

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain
from pydantic import BaseModel, ConfigDict, Field

from catalogue.product.repository import ProductRepository
from inventory.stock.ledger import StockLedger
from ordering.cart.cart import Cart, Variant
from ordering.cart.coupons import CouponApplier
from ordering.cart.events import CartsMerged
from ordering.cart.pricing import cents, recompute, unit_price
from shared.config import CommerceSettings
from shared.locks import KeyedLocks
from shared.utils.clock import as_utc, utcnow

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------
class StockIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    product_name: str = ""
    requested: int
    available: int
    message: str


class StockValidation(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    issues: list[StockIssue] = Field(default_factory=list)


class CartLineView(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    product_id: str
    product_name: str
    image: str = ""
    variant: Variant | None = None
    quantity: int
    unit_price: float
    line_total: float
    in_stock: bool
    available_quantity: int | None = None


class CartView(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    cart: Cart
    lines: list[CartLineView]
    item_count: int


class GuestCartLine(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    product_id: str
    quantity: int = Field(default=1, ge=1)
    variant: Variant | None = None


class GuestCoupon(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    discount: float
    kind: str = "percentage"


class GuestCartSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    lines: list[GuestCartLine] = Field(default_factory=list)
    coupon: GuestCoupon | None = None
    shipping_method: str | None = None


def cart_lock_key(owner_id, guest=False) -> str:
    return f"{'guest' if guest else 'customer'}:{owner_id}"


# ---------------------------------------------------------------------------
# Application service
# ---------------------------------------------------------------------------
class CartPricingEngine:
    def __init__(
        self,
        products: ProductRepository,
        ledger: StockLedger,
        settings: CommerceSettings | None = None,
        applier: CouponApplier | None = None,
        locks: KeyedLocks | None = None,
    ):
        self.settings = settings or CommerceSettings()
        self.applier = applier or CouponApplier(self.settings.fixed_discount_policy)
        self.locks = locks or KeyedLocks()
        self._products = products
        self._ledger = ledger

    @property
    def _carts(self):
        return current_domain.repository_for(Cart)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _new_cart(self, owner_id, guest=False) -> Cart:
        return Cart.create(owner_id, guest=guest, guest_ttl=timedelta(hours=self.settings.guest_cart_ttl_hours))

    def _load(self, owner_id, create=False, guest=False) -> Cart:
        cart = self._carts.find_for(owner_id, guest)
        if cart is None:
            if not create:
                raise ObjectNotFoundError({"cart": ["Cart not found"]})
            cart = self._new_cart(owner_id, guest=guest)
        return cart

    def _save(self, cart: Cart) -> Cart:
        self.recompute(cart)
        self._carts.add(cart)
        return cart

    def _mutate(self, owner_id, mutation, create=False, guest=False) -> Cart:
        with self.locks.hold(cart_lock_key(owner_id, guest)):
            cart = self._load(owner_id, create=create, guest=guest)
            mutation(cart)
            return self._save(cart)

    def hold(self, owner_id, guest=False):
        """The cart's lock, for callers that need a cart to stay still across several steps."""
        return self.locks.hold(cart_lock_key(owner_id, guest))

    def recompute(self, cart: Cart) -> Cart:
        """Refresh ``cart.totals`` from current catalogue snapshots."""
        products = self._products.get_many({str(line.product_id) for line in cart.lines})
        cart.reprice(recompute(cart, products, self.settings, self.applier))
        return cart

    # -------------------------------------------------------------------
    # Cart operations
    # -------------------------------------------------------------------
    def get_or_create_cart(self, owner_id, guest=False) -> Cart:
        with self.locks.hold(cart_lock_key(owner_id, guest)):
            cart = self._carts.find_for(owner_id, guest)
            if cart is not None:
                return cart
            cart = self._new_cart(owner_id, guest=guest)
            logger.info("Cart created", owner_id=str(owner_id), guest=guest)
            return self._save(cart)

    def find_cart(self, owner_id, guest=False) -> Cart | None:
        return self._carts.find_for(owner_id, guest)

    def add_item(self, owner_id, product_id, quantity=1, variant: Variant | None = None, guest=False) -> Cart:
        product = self._products.get(product_id)
        if not product.is_active:
            raise ValidationError({"product_id": ["Product is not available"]})

        return self._mutate(
            owner_id,
            lambda cart: cart.add_item(product.id, quantity, variant),
            create=True,
            guest=guest,
        )

    def update_quantity(self, owner_id, product_id, quantity, variant: Variant | None = None, guest=False) -> Cart:
        return self._mutate(owner_id, lambda cart: cart.update_quantity(product_id, quantity, variant), guest=guest)

    def remove_item(self, owner_id, product_id, variant: Variant | None = None, guest=False) -> Cart:
        return self._mutate(owner_id, lambda cart: cart.remove_item(product_id, variant), guest=guest)

    def apply_coupon(self, owner_id, code, discount, kind="percentage", guest=False) -> Cart:
        return self._mutate(owner_id, lambda cart: cart.apply_coupon(code, discount, kind), create=True, guest=guest)

    def remove_coupon(self, owner_id, guest=False) -> Cart:
        return self._mutate(owner_id, lambda cart: cart.remove_coupon(), guest=guest)

    def set_shipping_method(self, owner_id, method, guest=False) -> Cart:
        return self._mutate(owner_id, lambda cart: cart.set_shipping_method(method), create=True, guest=guest)

    def clear(self, owner_id, guest=False) -> Cart:
        return self._mutate(owner_id, lambda cart: cart.clear(), guest=guest)

    def item_count(self, owner_id, guest=False) -> int:
        cart = self._carts.find_for(owner_id, guest)
        return cart.item_count if cart is not None else 0

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def validate_cart_stock(self, cart: Cart) -> StockValidation:
        """Check every line against the ledger's availability policy. Read-only.

        Lines for the same product under different variants draw on one
        inventory record, so their quantities are checked together.
        """
        requested: dict[str, int] = {}
        for line in cart.lines:
            product_id = str(line.product_id)
            requested[product_id] = requested.get(product_id, 0) + line.quantity

        products = self._products.get_many(requested)
        issues = []
        for product_id, quantity in requested.items():
            product = products.get(product_id)
            if product is None or not product.is_active:
                issues.append(
                    StockIssue(
                        product_id=product_id,
                        product_name=product.name if product else "",
                        requested=quantity,
                        available=0,
                        message="Product is no longer available",
                    )
                )
                continue

            availability = self._ledger.check_availability(product.inventory, quantity)
            if not availability.available:
                issues.append(
                    StockIssue(
                        product_id=product_id,
                        product_name=product.name,
                        requested=quantity,
                        available=availability.available_quantity or 0,
                        message=availability.reason,
                    )
                )

        return StockValidation(is_valid=not issues, issues=issues)

    def validate_stock(self, owner_id, guest=False) -> StockValidation:
        with self.locks.hold(cart_lock_key(owner_id, guest)):
            return self.validate_cart_stock(self._load(owner_id, guest=guest))

    def view(self, owner_id, guest=False) -> CartView:
        """The cart with per-line prices and stock state for display, oldest line first."""
        cart = self.get_or_create_cart(owner_id, guest=guest)
        products = self._products.get_many({str(line.product_id) for line in cart.lines})

        lines = []
        for line in sorted(cart.lines, key=lambda line: as_utc(line.added_at)):
            product = products.get(str(line.product_id))
            if product is None:
                lines.append(
                    CartLineView(
                        product_id=str(line.product_id),
                        product_name="",
                        variant=line.variant,
                        quantity=line.quantity,
                        unit_price=0.0,
                        line_total=0.0,
                        in_stock=False,
                        available_quantity=0,
                    )
                )
                continue

            price = unit_price(line, product)
            availability = self._ledger.check_availability(product.inventory, line.quantity)
            lines.append(
                CartLineView(
                    product_id=str(line.product_id),
                    product_name=product.name,
                    image=product.image,
                    variant=line.variant,
                    quantity=line.quantity,
                    unit_price=cents(price),
                    line_total=cents(price * line.quantity),
                    in_stock=availability.available and product.is_active,
                    available_quantity=product.inventory.quantity if product.inventory.track_quantity else None,
                )
            )

        return CartView(cart=cart, lines=lines, item_count=cart.item_count)

    # -------------------------------------------------------------------
    # Guest carts
    # -------------------------------------------------------------------
    def merge_cart(self, owner_id, guest: GuestCartSnapshot, from_guest_session=False) -> Cart:
        """Replay a guest cart into the customer's cart.

        Lines go through ``add_item`` so identical lines merge. The guest
        coupon, when present, replaces the customer's (last write wins),
        and the guest shipping method is carried over.
        """
        if not guest.lines:
            raise ValidationError({"guest_cart": ["Guest cart data is required"]})

        products = self._products.get_many({line.product_id for line in guest.lines})

        def merge(cart: Cart):
            merged = 0
            for guest_line in guest.lines:
                product = products.get(guest_line.product_id)
                if product is None or not product.is_active:
                    logger.info(
                        "Skipping unavailable product while merging guest cart",
                        owner_id=cart.owner_id,
                        product_id=guest_line.product_id,
                    )
                    continue
                cart.add_item(guest_line.product_id, guest_line.quantity, guest_line.variant)
                merged += 1

            if guest.coupon is not None:
                cart.apply_coupon(guest.coupon.code, guest.coupon.discount, guest.coupon.kind)
            if guest.shipping_method is not None:
                cart.set_shipping_method(guest.shipping_method)

            cart.raise_(
                CartsMerged(
                    cart_id=str(cart.id),
                    owner_id=cart.owner_id,
                    lines_merged=merged,
                    from_guest_session=from_guest_session,
                )
            )

        return self._mutate(owner_id, merge, create=True)

    def merge_guest_session(self, owner_id, session_id) -> Cart:
        """Merge a stored guest cart into the customer's cart and discard the guest cart.

        Only guest carts are looked up: a customer's cart is never reachable
        through a session id.
        """
        with self.locks.hold(cart_lock_key(session_id, guest=True)):
            guest_cart = self._carts.find_for(session_id, guest=True)
            if guest_cart is None or not guest_cart.is_guest:
                raise ObjectNotFoundError({"session_id": [f"No guest cart for session {session_id}"]})

            snapshot = GuestCartSnapshot(
                lines=[
                    GuestCartLine(product_id=str(line.product_id), quantity=line.quantity, variant=line.variant)
                    for line in guest_cart.lines
                ],
                coupon=(
                    GuestCoupon(
                        code=guest_cart.coupon.code,
                        discount=guest_cart.coupon.discount,
                        kind=guest_cart.coupon.kind,
                    )
                    if guest_cart.coupon is not None
                    else None
                ),
                shipping_method=guest_cart.shipping_method,
            )
            cart = self.merge_cart(owner_id, snapshot, from_guest_session=True)
            self._carts.discard(guest_cart)

        logger.info("Guest cart merged", owner_id=str(owner_id), session_id=str(session_id))
        return cart

    def purge_expired_guest_carts(self, as_of=None) -> int:
        """Delete guest carts whose expiry has passed. Meant for a periodic job."""
        as_of = as_of or utcnow()
        purged = 0
        while True:
            purged_in_batch = 0
            for candidate in self._carts.expired_guest_carts(as_of):
                with self.locks.hold(cart_lock_key(candidate.owner_id, guest=True)):
                    cart = self._carts.find_for(candidate.owner_id, guest=True)
                    if cart is not None and cart.is_expired(as_of):
                        self._carts.discard(cart)
                        purged_in_batch += 1
            purged += purged_in_batch
            if not purged_in_batch:
                break

        if purged:
            logger.info("Expired guest carts purged", purged_count=purged, as_of=as_of.isoformat())
        return purged
