"""Low stock alert template — internal notification to operations."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
    RecipientType,
)


class LowStockAlertTemplate:
    notification_type = NotificationType.LOW_STOCK_ALERT.value
    default_channel = NotificationChannel.SLACK.value
    recipient_type = RecipientType.INTERNAL.value

    @staticmethod
    def render(context: dict) -> dict:
        product_name = context.get("product_name") or "N/A"
        product_id = context.get("product_id", "N/A")
        current_quantity = context.get("current_quantity", 0)
        threshold = context.get("threshold", 0)
        return {
            "subject": f"[Low Stock] {product_name}",
            "body": (
                f"Low stock alert for {product_name}\n\n"
                f"Product ID: {product_id}\n"
                f"Current Quantity: {current_quantity}\n"
                f"Threshold: {threshold}\n\n"
                "Please review and reorder as needed."
            ),
        }
