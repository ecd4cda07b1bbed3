"""StockLedger — availability policy and inventory deltas.

Availability policy, in order:
    1. quantity not tracked  -> available
    2. backorders allowed    -> available
    3. quantity >= requested -> available, otherwise unavailable with the
       current quantity as the shortfall detail

Deltas go through the product repository's atomic operations. A strict
decrease either applies in full or raises ``Conflict``; it never drives
quantity below zero. After a decrease that leaves quantity at or below the
low-stock threshold, a ``LowStockAlert`` is recorded, which raises
``LowStockDetected``.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from pydantic import BaseModel, ConfigDict

from catalogue.product.repository import ProductRepository
from inventory.stock.alert import LowStockAlert
from inventory.stock.record import InventoryRecord, StockDirection

logger = structlog.get_logger(__name__)


class Availability(BaseModel):
    model_config = ConfigDict(frozen=True)

    available: bool
    available_quantity: int | None = None
    reason: str


class StockLedger:
    def __init__(self, products: ProductRepository):
        self._products = products

    @staticmethod
    def check_availability(record: InventoryRecord, requested_quantity: int) -> Availability:
        if not record.track_quantity:
            return Availability(available=True, reason="Stock tracking disabled")
        if record.allow_backorders:
            return Availability(available=True, reason="Backorders allowed")
        if record.quantity >= requested_quantity:
            return Availability(available=True, reason="In stock")
        return Availability(
            available=False,
            available_quantity=record.quantity,
            reason=f"Only {record.quantity} items available",
        )

    def apply_delta(
        self,
        product_id: str,
        quantity: int,
        direction: StockDirection,
        strict: bool = True,
    ) -> InventoryRecord:
        """Apply a stock movement and return the resulting record.

        Raises ``Conflict`` when a strict decrease finds less stock than
        requested at write time. ``strict=False`` keeps the lenient
        floor-at-zero behaviour for callers that must not fail.
        """
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        direction = StockDirection(direction)
        if direction == StockDirection.DECREASE:
            record = self._products.decrement_stock(product_id, quantity, strict=strict)
        else:
            record = self._products.increment_stock(product_id, quantity)

        if not record.track_quantity:
            return record

        logger.info(
            "Stock delta applied",
            product_id=str(product_id),
            direction=direction.value,
            quantity=quantity,
            new_quantity=record.quantity,
        )

        if direction == StockDirection.DECREASE and record.is_low:
            self._record_low_stock(product_id, record)
        return record

    def _record_low_stock(self, product_id, record: InventoryRecord) -> None:
        product = self._products.find(product_id)
        logger.warning(
            "Low stock detected",
            product_id=str(product_id),
            quantity=record.quantity,
            threshold=record.low_stock_threshold,
        )
        alert = LowStockAlert.raise_for(
            product_id,
            product.name if product else "",
            record.quantity,
            record.low_stock_threshold,
        )
        current_domain.repository_for(LowStockAlert).add(alert)
