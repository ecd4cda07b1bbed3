"""Composition root — initializes the ordering domain and wires the services.

Carts, orders and low-stock alerts are Protean aggregates of the
``ordering`` domain. Their persistence provider follows the settings:
the memory provider by default, SQLite or PostgreSQL when
``database_url`` is set. Products stay behind ``ProductRepository``,
which owns the conditional stock updates.

Event handlers and custom repositories register on the domain when their
modules are imported, so they are imported here before initialization.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.engine import make_url

from catalogue.product.repository import InMemoryProductRepository, ProductRepository
from catalogue.product.sql import SqlProductRepository
from catalogue.utils.db import make_engine
from catalogue.utils.db import setup_db as setup_catalogue_db
from inventory.stock.ledger import StockLedger
from notifications.channel import get_notifier, set_notifier
from notifications.channel.port import NotificationPort
from notifications.notification.inventory_events import InventoryEventsHandler  # noqa: F401
from notifications.notification.ordering_events import OrderingEventsHandler  # noqa: F401
from ordering.cart.coupons import CouponApplier
from ordering.cart.repository import CartRepository  # noqa: F401
from ordering.cart.service import CartPricingEngine
from ordering.checkout.saga import CheckoutOrchestrator
from ordering.domain import ordering
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.repository import OrderRepository  # noqa: F401
from ordering.utils.db import setup_db as setup_ordering_db
from shared.config import CommerceSettings
from shared.locks import KeyedLocks

logger = structlog.get_logger(__name__)

MEMORY_DATABASE = {"provider": "memory"}

_SQL_PROVIDERS = {
    "sqlite": "sqlite",
    "postgresql": "postgresql",
    "postgres": "postgresql",
}

_active_database: dict | None = None


@dataclass
class Container:
    settings: CommerceSettings
    notifier: NotificationPort
    products: ProductRepository
    ledger: StockLedger
    cart_engine: CartPricingEngine
    checkout: CheckoutOrchestrator
    lifecycle: OrderLifecycle


def database_config(database_url: str | None) -> dict:
    """The domain's default database for a URL; the memory provider when there is none."""
    if not database_url:
        return dict(MEMORY_DATABASE)

    backend = make_url(database_url).get_backend_name()
    provider = _SQL_PROVIDERS.get(backend)
    if provider is None:
        raise ValueError(f"Unsupported database for carts and orders: {backend}")
    return {"provider": provider, "database_uri": database_url}


def init_domain(settings: CommerceSettings | None = None):
    """Point the ordering domain at the configured database and initialize it.

    Initialization runs again only when the database changes, which starts
    the domain on fresh providers.
    """
    global _active_database

    settings = settings or CommerceSettings.from_env()
    database = database_config(settings.database_url)
    if database == _active_database:
        return ordering

    ordering.config["databases"]["default"] = database
    ordering.init(traverse=False)
    _active_database = database

    if database["provider"] != MEMORY_DATABASE["provider"]:
        setup_ordering_db(ordering)
    logger.info("Ordering domain initialized", provider=database["provider"])
    return ordering


def build_product_repository(settings: CommerceSettings, products=()) -> ProductRepository:
    if settings.database_url:
        engine = make_engine(settings.database_url)
        setup_catalogue_db(engine)
        repository = SqlProductRepository(engine)
        for product in products:
            repository.add(product)
        logger.info("Using SQL product repository", database_url=engine.url.render_as_string(hide_password=True))
        return repository
    return InMemoryProductRepository(products)


def build_container(
    settings: CommerceSettings | None = None,
    products=(),
    notifier: NotificationPort | None = None,
    product_repository: ProductRepository | None = None,
) -> Container:
    settings = settings or CommerceSettings.from_env()
    init_domain(settings)

    if notifier is not None:
        set_notifier(notifier)
    notifier = get_notifier()

    product_repo = product_repository or build_product_repository(settings, products)
    ledger = StockLedger(product_repo)
    cart_engine = CartPricingEngine(
        product_repo,
        ledger,
        settings=settings,
        applier=CouponApplier(settings.fixed_discount_policy),
        locks=KeyedLocks(),
    )
    checkout = CheckoutOrchestrator(cart_engine, product_repo, ledger, settings=settings)
    lifecycle = OrderLifecycle(ledger, settings=settings, locks=KeyedLocks())

    return Container(
        settings=settings,
        notifier=notifier,
        products=product_repo,
        ledger=ledger,
        cart_engine=cart_engine,
        checkout=checkout,
        lifecycle=lifecycle,
    )
