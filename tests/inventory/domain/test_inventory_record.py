"""Tests for InventoryRecord and the pure stock delta helper."""

import pytest
from protean.exceptions import ValidationError

from inventory.stock.record import InventoryRecord, StockDirection, apply_delta_to_record
from shared.errors import Conflict


class TestInventoryRecord:
    def test_defaults(self):
        record = InventoryRecord()
        assert record.track_quantity is True
        assert record.quantity == 0
        assert record.low_stock_threshold == 10
        assert record.allow_backorders is False

    def test_negative_quantity_is_rejected(self):
        with pytest.raises(Exception):
            InventoryRecord(quantity=-1)

    def test_is_low_at_threshold(self):
        assert InventoryRecord(quantity=10, low_stock_threshold=10).is_low
        assert not InventoryRecord(quantity=11, low_stock_threshold=10).is_low

    def test_untracked_record_is_never_low(self):
        assert not InventoryRecord(track_quantity=False, quantity=0).is_low

    def test_in_stock(self):
        assert InventoryRecord(quantity=1).in_stock
        assert not InventoryRecord(quantity=0).in_stock
        assert InventoryRecord(quantity=0, allow_backorders=True).in_stock
        assert InventoryRecord(quantity=0, track_quantity=False).in_stock


class TestApplyDeltaToRecord:
    def test_increase_adds(self):
        record = apply_delta_to_record(InventoryRecord(quantity=5), 3, StockDirection.INCREASE)
        assert record.quantity == 8

    def test_decrease_subtracts(self):
        record = apply_delta_to_record(InventoryRecord(quantity=5), 3, StockDirection.DECREASE)
        assert record.quantity == 2

    def test_decrease_to_exactly_zero(self):
        record = apply_delta_to_record(InventoryRecord(quantity=3), 3, StockDirection.DECREASE)
        assert record.quantity == 0

    def test_strict_decrease_below_zero_raises_conflict(self):
        with pytest.raises(Conflict) as exc:
            apply_delta_to_record(InventoryRecord(quantity=2), 3, StockDirection.DECREASE)
        assert exc.value.available_quantity == 2
        assert exc.value.messages == {"quantity": ["Only 2 items available"]}

    def test_lenient_decrease_is_floored_at_zero(self):
        record = apply_delta_to_record(InventoryRecord(quantity=2), 5, StockDirection.DECREASE, strict=False)
        assert record.quantity == 0

    def test_backorder_decrease_is_floored_at_zero(self):
        record = apply_delta_to_record(
            InventoryRecord(quantity=2, allow_backorders=True),
            5,
            StockDirection.DECREASE,
        )
        assert record.quantity == 0

    def test_untracked_record_is_unchanged(self):
        original = InventoryRecord(track_quantity=False, quantity=4)
        assert apply_delta_to_record(original, 10, StockDirection.DECREASE) == original
        assert apply_delta_to_record(original, 10, StockDirection.INCREASE) == original

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_is_rejected(self, quantity):
        with pytest.raises(ValidationError):
            apply_delta_to_record(InventoryRecord(quantity=5), quantity, StockDirection.INCREASE)

    def test_decrease_then_equal_increase_restores_quantity(self):
        original = InventoryRecord(quantity=7)
        decreased = apply_delta_to_record(original, 4, StockDirection.DECREASE)
        restored = apply_delta_to_record(decreased, 4, StockDirection.INCREASE)
        assert restored == original

    def test_original_record_is_not_mutated(self):
        original = InventoryRecord(quantity=7)
        apply_delta_to_record(original, 4, StockDirection.DECREASE)
        assert original.quantity == 7
