"""Application tests for StockLedger deltas against the in-memory product repository."""

import pytest
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from catalogue.product.repository import InMemoryProductRepository
from conftest import make_product, stored_event_types
from inventory.stock.alert import LowStockAlert
from inventory.stock.ledger import StockLedger
from inventory.stock.record import StockDirection
from notifications.channel import set_notifier
from shared.errors import Conflict


@pytest.fixture()
def notifier(notifier):
    set_notifier(notifier)
    return notifier


def _ledger(**product_kwargs):
    products = InMemoryProductRepository([make_product(**product_kwargs)])
    return StockLedger(products), products


def _alerts():
    return current_domain.repository_for(LowStockAlert)._dao.query.all().items


class TestApplyDelta:
    def test_decrease_updates_repository(self):
        ledger, products = _ledger(quantity=50)
        record = ledger.apply_delta("prod-001", 5, StockDirection.DECREASE)
        assert record.quantity == 45
        assert products.get("prod-001").inventory.quantity == 45

    def test_increase_updates_repository(self):
        ledger, products = _ledger(quantity=50)
        ledger.apply_delta("prod-001", 5, StockDirection.INCREASE)
        assert products.get("prod-001").inventory.quantity == 55

    def test_direction_accepts_string(self):
        ledger, products = _ledger(quantity=50)
        ledger.apply_delta("prod-001", 5, "decrease")
        assert products.get("prod-001").inventory.quantity == 45

    def test_strict_decrease_conflict_leaves_quantity_untouched(self):
        ledger, products = _ledger(quantity=2)
        with pytest.raises(Conflict):
            ledger.apply_delta("prod-001", 3, StockDirection.DECREASE)
        assert products.get("prod-001").inventory.quantity == 2

    def test_lenient_decrease_clamps_at_zero(self):
        ledger, products = _ledger(quantity=2)
        ledger.apply_delta("prod-001", 3, StockDirection.DECREASE, strict=False)
        assert products.get("prod-001").inventory.quantity == 0

    def test_zero_quantity_is_rejected(self):
        ledger, _ = _ledger(quantity=2)
        with pytest.raises(ValidationError):
            ledger.apply_delta("prod-001", 0, StockDirection.DECREASE)

    def test_unknown_product_raises_not_found(self):
        ledger, _ = _ledger()
        with pytest.raises(ObjectNotFoundError):
            ledger.apply_delta("prod-missing", 1, StockDirection.DECREASE)

    def test_round_trip_restores_quantity(self):
        ledger, products = _ledger(quantity=30)
        ledger.apply_delta("prod-001", 7, StockDirection.DECREASE)
        ledger.apply_delta("prod-001", 7, StockDirection.INCREASE)
        assert products.get("prod-001").inventory.quantity == 30


class TestLowStockAlerts:
    def test_low_stock_detected_at_threshold(self, notifier):
        ledger, _ = _ledger(quantity=12, low_stock_threshold=10)
        ledger.apply_delta("prod-001", 2, StockDirection.DECREASE)

        alerts = _alerts()
        assert len(alerts) == 1
        assert alerts[0].current_quantity == 10
        assert alerts[0].threshold == 10
        assert alerts[0].product_name == "Widget"
        assert stored_event_types("ordering::low_stock_alert") == ["Ordering.LowStockDetected.v1"]

    def test_low_stock_alert_notifies_operations(self, notifier):
        ledger, _ = _ledger(quantity=12, low_stock_threshold=10)
        ledger.apply_delta("prod-001", 2, StockDirection.DECREASE)

        sent = notifier.sent_for("low_stock_alert")
        assert len(sent) == 1
        assert sent[0]["recipient_id"] == "operations"

    def test_no_low_stock_above_threshold(self, notifier):
        ledger, _ = _ledger(quantity=20, low_stock_threshold=10)
        ledger.apply_delta("prod-001", 2, StockDirection.DECREASE)
        assert _alerts() == []
        assert notifier.sent_for("low_stock_alert") == []

    def test_increase_never_signals_low_stock(self, notifier):
        ledger, _ = _ledger(quantity=1, low_stock_threshold=10)
        ledger.apply_delta("prod-001", 1, StockDirection.INCREASE)
        assert _alerts() == []

    def test_untracked_product_records_nothing(self, notifier):
        ledger, _ = _ledger(quantity=0, track_quantity=False)
        ledger.apply_delta("prod-001", 5, StockDirection.DECREASE)
        assert _alerts() == []

    def test_raising_notifier_does_not_reach_caller(self, notifier):
        notifier.configure(should_raise=True)
        ledger, products = _ledger(quantity=5, low_stock_threshold=10)

        ledger.apply_delta("prod-001", 1, StockDirection.DECREASE)

        assert products.get("prod-001").inventory.quantity == 4
        assert len(_alerts()) == 1
