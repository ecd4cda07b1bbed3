"""Integration tests for the SQLAlchemy product repository on in-memory SQLite."""

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError

from catalogue.product.product import ProductStatus
from catalogue.product.sql import SqlProductRepository
from catalogue.utils.db import drop_db, make_engine, setup_db
from conftest import make_product
from shared.errors import Conflict


@pytest.fixture()
def repository():
    engine = make_engine("sqlite://")
    setup_db(engine)
    yield SqlProductRepository(engine)
    drop_db(engine)


class TestProductPersistence:
    def test_add_and_find(self, repository):
        repository.add(make_product(variant_adjustments={"Size=L": 2.5}))

        product = repository.find("prod-001")
        assert product.name == "Widget"
        assert product.price == 20.0
        assert product.status == ProductStatus.ACTIVE
        assert product.variant_adjustments == {"Size=L": 2.5}
        assert product.inventory.quantity == 100

    def test_find_missing_returns_none(self, repository):
        assert repository.find("prod-missing") is None

    def test_get_missing_raises_not_found(self, repository):
        with pytest.raises(ObjectNotFoundError):
            repository.get("prod-missing")

    def test_add_existing_updates(self, repository):
        repository.add(make_product(price=20.0))
        repository.add(make_product(price=25.0, status=ProductStatus.ARCHIVED))

        product = repository.get("prod-001")
        assert product.price == 25.0
        assert product.status == ProductStatus.ARCHIVED

    def test_get_many_skips_missing(self, repository):
        repository.add(make_product(product_id="prod-001"))
        repository.add(make_product(product_id="prod-002"))

        found = repository.get_many(["prod-001", "prod-002", "prod-003"])
        assert set(found) == {"prod-001", "prod-002"}


class TestStockWrites:
    def test_strict_decrement(self, repository):
        repository.add(make_product(quantity=5))
        record = repository.decrement_stock("prod-001", 3)
        assert record.quantity == 2
        assert repository.get("prod-001").inventory.quantity == 2

    def test_strict_decrement_of_exact_quantity(self, repository):
        repository.add(make_product(quantity=3))
        assert repository.decrement_stock("prod-001", 3).quantity == 0

    def test_strict_decrement_conflict_leaves_row_untouched(self, repository):
        repository.add(make_product(quantity=2))
        with pytest.raises(Conflict) as exc:
            repository.decrement_stock("prod-001", 3)
        assert exc.value.available_quantity == 2
        assert repository.get("prod-001").inventory.quantity == 2

    def test_lenient_decrement_clamps_at_zero(self, repository):
        repository.add(make_product(quantity=2))
        assert repository.decrement_stock("prod-001", 5, strict=False).quantity == 0

    def test_backorder_decrement_clamps_at_zero(self, repository):
        repository.add(make_product(quantity=2, allow_backorders=True))
        assert repository.decrement_stock("prod-001", 5).quantity == 0

    def test_untracked_decrement_is_noop(self, repository):
        repository.add(make_product(quantity=2, track_quantity=False))
        assert repository.decrement_stock("prod-001", 5).quantity == 2

    def test_increment(self, repository):
        repository.add(make_product(quantity=2))
        assert repository.increment_stock("prod-001", 4).quantity == 6

    def test_decrement_unknown_product(self, repository):
        with pytest.raises(ObjectNotFoundError):
            repository.decrement_stock("prod-missing", 1)

    def test_non_positive_quantity_is_rejected(self, repository):
        repository.add(make_product(quantity=2))
        with pytest.raises(ValidationError):
            repository.increment_stock("prod-001", 0)
