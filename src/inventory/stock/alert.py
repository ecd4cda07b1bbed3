"""LowStockAlert aggregate — one record per decrease that left a product low.

The alert is the aggregate that raises ``LowStockDetected``; persisting it
dispatches the event to the operations notification handler in the same
unit of work, and leaves a history of when each product ran low.
"""

from protean.fields import DateTime, Identifier, Integer, String

from inventory.stock.events import LowStockDetected
from ordering.domain import ordering
from shared.utils.clock import utcnow


@ordering.aggregate
class LowStockAlert:
    product_id = Identifier(required=True)
    product_name = String(max_length=255, default="")
    current_quantity = Integer(required=True, min_value=0)
    threshold = Integer(required=True, min_value=0)
    detected_at = DateTime()

    @classmethod
    def raise_for(cls, product_id, product_name, current_quantity, threshold):
        now = utcnow()
        alert = cls(
            product_id=str(product_id),
            product_name=product_name or "",
            current_quantity=current_quantity,
            threshold=threshold,
            detected_at=now,
        )
        alert.raise_(
            LowStockDetected(
                alert_id=str(alert.id),
                product_id=str(product_id),
                product_name=product_name or "",
                current_quantity=current_quantity,
                threshold=threshold,
                detected_at=now,
            )
        )
        return alert
