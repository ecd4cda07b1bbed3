"""Domain events raised by the stock ledger's low-stock alerts."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="LowStockAlert")
class LowStockDetected:
    """Quantity fell to or below the product's low-stock threshold after a decrease."""

    __version__ = 1

    alert_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(max_length=255, default="")
    current_quantity = Integer(required=True)
    threshold = Integer(required=True)
    detected_at = DateTime()
