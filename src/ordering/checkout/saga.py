"""Checkout saga — converts a priced, stock-validated cart into an Order.

Flow (all under the cart owner's lock):
    1. Reject an empty (or missing) cart with EmptyCart.
    2. Validate stock against the ledger; any shortfall → InsufficientStock,
       nothing has been written yet.
    3. Snapshot cart lines into order lines and price them with the same
       function the cart uses, honouring a shipping-method override.
    4. Reserve stock: one atomic conditional decrement per product. A
       Conflict means another checkout took the stock after step 2; every
       decrement already applied is compensated and InsufficientStock is
       raised.
    5. Persist the order under a fresh order number, retrying on number
       collisions. Persisting dispatches OrderPlaced; the confirmation
       notification is best-effort. If persistence fails, the reservation
       is compensated.
    6. Clear the cart. A failure here is logged; the order stands.

Stock is reserved before the order is written so that losing a stock race
never leaves an order behind.
"""

from collections.abc import Callable

import structlog
from protean.utils.globals import current_domain
from pydantic import BaseModel, ConfigDict, Field

from catalogue.product.repository import ProductRepository
from inventory.stock.ledger import StockLedger
from inventory.stock.record import StockDirection
from ordering.cart.cart import Cart, parse_shipping_method
from ordering.cart.pricing import cents, compute_totals, line_amount, unit_price
from ordering.cart.service import CartPricingEngine, StockIssue
from ordering.order.numbering import generate_order_number
from ordering.order.order import Address, Order, OrderTotals, PaymentDescriptor
from shared.config import CommerceSettings
from shared.errors import Conflict, EmptyCart, InsufficientStock

logger = structlog.get_logger(__name__)


class CheckoutOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    shipping_method: str | None = None
    customer_notes: str | None = Field(default=None, max_length=500)
    is_gift: bool = False
    gift_message: str | None = Field(default=None, max_length=500)
    gift_wrap: bool = False


class CheckoutOrchestrator:
    def __init__(
        self,
        carts: CartPricingEngine,
        products: ProductRepository,
        ledger: StockLedger,
        settings: CommerceSettings | None = None,
        number_generator: Callable[[], str] = generate_order_number,
    ):
        self.settings = settings or carts.settings
        self._carts = carts
        self._products = products
        self._ledger = ledger
        self._next_number = number_generator

    @property
    def _orders(self):
        return current_domain.repository_for(Order)

    def checkout(
        self,
        owner_id,
        shipping_address: Address,
        payment: PaymentDescriptor,
        billing_address: Address | None = None,
        options: CheckoutOptions | None = None,
    ) -> Order:
        options = options or CheckoutOptions()

        with self._carts.hold(owner_id):
            cart = self._carts.find_cart(owner_id)
            if cart is None or cart.is_empty:
                raise EmptyCart()

            validation = self._carts.validate_cart_stock(cart)
            if not validation.is_valid:
                logger.info(
                    "Checkout rejected for insufficient stock",
                    owner_id=str(owner_id),
                    issues=[issue.product_id for issue in validation.issues],
                )
                raise InsufficientStock(validation.issues)

            products = self._products.get_many({str(line.product_id) for line in cart.lines})
            lines = [self._snapshot_line(line, products[str(line.product_id)]) for line in cart.lines]
            shipping_method = parse_shipping_method(options.shipping_method or cart.shipping_method).value
            totals = self._price(cart, products, shipping_method)

            reserved = self._reserve(cart, products)
            try:
                order = self._persist_order(
                    cart, lines, totals, shipping_method, shipping_address, billing_address, payment, options
                )
            except Exception:
                logger.exception("Order could not be persisted, releasing reserved stock", owner_id=str(owner_id))
                self._release(reserved)
                raise

            try:
                self._carts.clear(owner_id)
            except Exception:
                logger.exception("Failed to clear cart after checkout", owner_id=str(owner_id), order_id=str(order.id))

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            owner_id=order.owner_id,
            total=order.totals.total,
            line_count=len(order.lines),
        )
        return order

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    @staticmethod
    def _snapshot_line(line, product) -> dict:
        price = unit_price(line, product)
        return {
            "product_id": str(line.product_id),
            "name": product.name,
            "image": product.image,
            "unit_price": cents(price),
            "quantity": line.quantity,
            "variant": line.variant,
            "line_total": cents(price * line.quantity),
        }

    def _price(self, cart: Cart, products, shipping_method: str) -> OrderTotals:
        subtotal = sum(line_amount(line, products[str(line.product_id)]) for line in cart.lines)
        totals = compute_totals(subtotal, cart.coupon, shipping_method, self.settings, self._carts.applier)
        return OrderTotals(
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            shipping_cost=totals.shipping,
            total=totals.total,
        )

    def _reserve(self, cart: Cart, products) -> list[tuple[str, int]]:
        """Decrement stock per tracked product; all or nothing."""
        requested: dict[str, int] = {}
        for line in cart.lines:
            product_id = str(line.product_id)
            if products[product_id].inventory.track_quantity:
                requested[product_id] = requested.get(product_id, 0) + line.quantity

        reserved = []
        for product_id, quantity in requested.items():
            try:
                self._ledger.apply_delta(product_id, quantity, StockDirection.DECREASE)
            except Conflict as exc:
                self._release(reserved)
                available = exc.available_quantity or 0
                logger.info(
                    "Stock taken by a concurrent checkout",
                    product_id=product_id,
                    requested=quantity,
                    available=available,
                )
                issue = StockIssue(
                    product_id=product_id,
                    product_name=products[product_id].name,
                    requested=quantity,
                    available=available,
                    message=f"Only {available} items available",
                )
                raise InsufficientStock([issue]) from exc
            reserved.append((product_id, quantity))

        return reserved

    def _release(self, reserved: list[tuple[str, int]]):
        for product_id, quantity in reserved:
            try:
                self._ledger.apply_delta(product_id, quantity, StockDirection.INCREASE)
            except Exception:
                logger.exception("Failed to release reserved stock", product_id=product_id, quantity=quantity)

    def _persist_order(
        self, cart, lines, totals, shipping_method, shipping_address, billing_address, payment, options
    ) -> Order:
        attempts = self.settings.order_number_attempts
        for attempt in range(1, attempts + 1):
            order = Order.create(
                owner_id=cart.owner_id,
                order_number=self._next_number(),
                lines=lines,
                shipping_address=shipping_address,
                billing_address=billing_address,
                payment=payment,
                totals=totals,
                shipping_method=shipping_method,
                delivery_days=self.settings.delivery_days_for(shipping_method),
                coupon_code=cart.coupon.code if cart.coupon else None,
                customer_notes=options.customer_notes,
                is_gift=options.is_gift,
                gift_message=options.gift_message,
                gift_wrap=options.gift_wrap,
            )
            order.place()
            try:
                return self._orders.add_new(order)
            except Conflict:
                logger.warning("Order number collision", order_number=order.order_number, attempt=attempt)

        raise Conflict({"order_number": [f"Could not assign a unique order number after {attempts} attempts"]})
