"""Tests for the StockLedger availability policy."""

from inventory.stock.ledger import StockLedger
from inventory.stock.record import InventoryRecord


class TestCheckAvailability:
    def test_untracked_is_always_available(self):
        result = StockLedger.check_availability(InventoryRecord(track_quantity=False, quantity=0), 1000)
        assert result.available is True

    def test_backorders_are_always_available(self):
        result = StockLedger.check_availability(InventoryRecord(quantity=0, allow_backorders=True), 50)
        assert result.available is True

    def test_enough_stock_is_available(self):
        result = StockLedger.check_availability(InventoryRecord(quantity=5), 5)
        assert result.available is True
        assert result.available_quantity is None

    def test_shortfall_reports_current_quantity(self):
        result = StockLedger.check_availability(InventoryRecord(quantity=2), 3)
        assert result.available is False
        assert result.available_quantity == 2
        assert result.reason == "Only 2 items available"

    def test_tracking_is_checked_before_backorders(self):
        record = InventoryRecord(track_quantity=False, quantity=0, allow_backorders=False)
        assert StockLedger.check_availability(record, 1).reason == "Stock tracking disabled"
