"""Order cancellation template — sent when an order is cancelled."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)


class OrderCancellationTemplate:
    notification_type = NotificationType.ORDER_CANCELLATION.value
    default_channel = NotificationChannel.EMAIL.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        customer_name = context.get("customer_name") or "there"
        cancelled_by = context.get("cancelled_by", "system")
        items = "\n".join(f"  {item['quantity']} x {item['name']}" for item in context.get("items", []))
        return {
            "subject": f"Order #{order_number} Cancelled",
            "body": (
                f"Hi {customer_name},\n\n"
                f"Your order #{order_number} has been cancelled.\n\n"
                + (f"{items}\n\n" if items else "")
                + f"Cancelled by: {cancelled_by}\n"
                f"Order Total: {context.get('total', 0.0):.2f}\n\n"
                "If payment was captured, a refund will be processed "
                "automatically.\n\n"
                "If you have questions, please contact our support team."
            ),
        }
