"""Shipping update template — sent when an order ships with a tracking number."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)


class ShippingUpdateTemplate:
    notification_type = NotificationType.SHIPPING_UPDATE.value
    default_channel = NotificationChannel.EMAIL.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        tracking_number = context.get("tracking_number", "N/A")
        shipping_method = context.get("shipping_method", "standard")
        estimated_delivery = context.get("estimated_delivery") or "soon"
        return {
            "subject": f"Your Order #{order_number} Has Shipped!",
            "body": (
                f"Great news! Your order #{order_number} has shipped.\n\n"
                f"Shipping Method: {shipping_method}\n"
                f"Tracking Number: {tracking_number}\n"
                f"Estimated Delivery: {estimated_delivery}\n\n"
                "You can track your package using the tracking number above."
            ),
        }
