"""Inbound event handler — Notifications reacts to Inventory events.

Listens for LowStockDetected to send internal alerts via Slack.
"""

from protean.utils.mixins import handle

from inventory.stock.alert import LowStockAlert
from inventory.stock.events import LowStockDetected
from notifications.notification.dispatch import NotificationDispatcher
from notifications.notification.notification import NotificationType
from ordering.domain import ordering

OPERATIONS_RECIPIENT = "operations"


@ordering.event_handler(part_of=LowStockAlert)
class InventoryEventsHandler:
    """Reacts to Inventory domain events to send internal alerts."""

    @handle(LowStockDetected)
    def on_low_stock_detected(self, event: LowStockDetected) -> None:
        """Send internal Slack alert when stock drops to the low-stock threshold."""
        NotificationDispatcher().send(
            NotificationType.LOW_STOCK_ALERT.value,
            OPERATIONS_RECIPIENT,
            context={
                "product_id": str(event.product_id),
                "product_name": event.product_name,
                "current_quantity": event.current_quantity,
                "threshold": event.threshold,
            },
        )
