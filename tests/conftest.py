from pathlib import Path

import pytest

from bootstrap import build_container
from catalogue.product.product import ProductSnapshot, ProductStatus
from inventory.stock.record import InventoryRecord
from notifications.channel import reset_notifier
from notifications.channel.fake import FakeNotifier
from ordering.order.order import Address, PaymentDescriptor, PaymentMethod, PaymentStatus
from shared.config import CommerceSettings


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Initialize the ordering domain on the memory provider and push its
    context, so `current_domain` resolves in every test.
    """
    from bootstrap import init_domain

    ordering = init_domain(CommerceSettings())
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_notifier()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def make_product(
    product_id="prod-001",
    name="Widget",
    price=20.0,
    quantity=100,
    track_quantity=True,
    allow_backorders=False,
    low_stock_threshold=10,
    status=ProductStatus.ACTIVE,
    variant_adjustments=None,
    image="https://cdn.example.com/widget.png",
):
    return ProductSnapshot(
        id=product_id,
        name=name,
        image=image,
        price=price,
        status=status,
        variant_adjustments=variant_adjustments or {},
        inventory=InventoryRecord(
            track_quantity=track_quantity,
            quantity=quantity,
            low_stock_threshold=low_stock_threshold,
            allow_backorders=allow_backorders,
        ),
    )


def make_address(**overrides):
    values = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address": "12 Analytical Way",
        "city": "London",
        "state": "LDN",
        "zip_code": "N1 9GU",
        "country": "UK",
    }
    values.update(overrides)
    return Address(**values)


def make_payment(**overrides):
    values = {
        "method": PaymentMethod.CARD.value,
        "status": PaymentStatus.COMPLETED.value,
        "transaction_id": "txn-001",
        "last_four": "4242",
        "brand": "visa",
    }
    values.update(overrides)
    return PaymentDescriptor(**values)


def stored_event_types(stream_category: str) -> list[str]:
    """Type names (``Ordering.<Event>.v1``) of the events stored for a stream category."""
    from protean import current_domain

    messages = current_domain.event_store.store.read(stream_category)
    return [m.metadata.headers.type for m in messages if m.metadata and m.metadata.headers]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def settings():
    return CommerceSettings()


@pytest.fixture()
def notifier():
    return FakeNotifier()


@pytest.fixture()
def container(settings, notifier):
    return build_container(settings=settings, notifier=notifier)


@pytest.fixture()
def add_product(container):
    """Register a product in the container's catalogue and return it."""

    def _add(**kwargs):
        product = make_product(**kwargs)
        container.products.add(product)
        return product

    return _add
