"""InventoryRecord — the stock fields of a catalogue product.

The commerce core never owns product identity or pricing. It reads the
inventory flags and writes ``quantity`` through the StockLedger, which in
turn delegates the write to the product repository's atomic operations.
"""

from enum import Enum

from protean.exceptions import ValidationError
from pydantic import BaseModel, ConfigDict, Field

from shared.errors import Conflict


class StockDirection(Enum):
    DECREASE = "decrease"
    INCREASE = "increase"


class InventoryRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    track_quantity: bool = True
    quantity: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=10, ge=0)
    allow_backorders: bool = False

    @property
    def in_stock(self) -> bool:
        return not self.track_quantity or self.quantity > 0 or self.allow_backorders

    @property
    def is_low(self) -> bool:
        return self.track_quantity and self.quantity <= self.low_stock_threshold


def apply_delta_to_record(
    record: InventoryRecord,
    quantity: int,
    direction: StockDirection,
    strict: bool = True,
) -> InventoryRecord:
    """Return ``record`` with ``quantity`` applied in ``direction``.

    Untracked records are returned unchanged. An increase always applies.
    A decrease that would go below zero raises ``Conflict`` when ``strict``
    and the record does not allow backorders; otherwise the result is
    floored at zero.
    """
    if quantity <= 0:
        raise ValidationError({"quantity": ["Quantity must be positive"]})

    if not record.track_quantity:
        return record

    if direction == StockDirection.INCREASE:
        return record.model_copy(update={"quantity": record.quantity + quantity})

    if record.quantity < quantity and strict and not record.allow_backorders:
        raise Conflict(
            {"quantity": [f"Only {record.quantity} items available"]},
            available_quantity=record.quantity,
        )
    return record.model_copy(update={"quantity": max(0, record.quantity - quantity)})
