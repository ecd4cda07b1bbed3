"""Order confirmation template — sent when an order is placed."""

from notifications.notification.notification import (
    NotificationChannel,
    NotificationType,
)


class OrderConfirmationTemplate:
    notification_type = NotificationType.ORDER_CONFIRMATION.value
    default_channel = NotificationChannel.EMAIL.value

    @staticmethod
    def render(context: dict) -> dict:
        order_number = context.get("order_number", "N/A")
        customer_name = context.get("customer_name") or "there"
        items = context.get("items", [])
        item_lines = "\n".join(
            f"  {item['quantity']} x {item['name']}"
            + (f" ({item['variant']})" if item.get("variant") else "")
            + f"  {item['line_total']:.2f}"
            for item in items
        )
        return {
            "subject": f"Order Confirmation - #{order_number}",
            "body": (
                f"Hi {customer_name},\n\n"
                f"Thank you for your order #{order_number}.\n\n"
                f"{item_lines}\n\n"
                f"Subtotal: {context.get('subtotal', 0.0):.2f}\n"
                f"Discount: -{context.get('discount', 0.0):.2f}\n"
                f"Shipping: {context.get('shipping_cost', 0.0):.2f}\n"
                f"Tax: {context.get('tax', 0.0):.2f}\n"
                f"Order Total: {context.get('total', 0.0):.2f}\n\n"
                f"Estimated Delivery: {context.get('estimated_delivery') or 'soon'}\n\n"
                "We'll notify you once your order ships.\n\n"
                "Thank you for shopping with ShopStream!"
            ),
        }
