"""Inbound event handler — Notifications reacts to Order events.

Listens for OrderPlaced (confirmation), OrderShipped (shipping update)
and OrderCancelled (cancellation notice).
"""

import json

from protean.utils.mixins import handle

from notifications.notification.dispatch import NotificationDispatcher
from notifications.notification.notification import NotificationType
from ordering.domain import ordering
from ordering.order.events import OrderCancelled, OrderPlaced, OrderShipped
from ordering.order.order import Order


def _date(value) -> str | None:
    return value.date().isoformat() if value is not None else None


def _items(payload) -> list[dict]:
    return json.loads(payload) if payload else []


@ordering.event_handler(part_of=Order)
class OrderingEventsHandler:
    """Reacts to Ordering domain events to send customer notifications."""

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        NotificationDispatcher().send(
            NotificationType.ORDER_CONFIRMATION.value,
            event.owner_id,
            context={
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_name": event.customer_name,
                "items": _items(event.items),
                "subtotal": event.subtotal,
                "discount": event.discount,
                "tax": event.tax,
                "shipping_cost": event.shipping_cost,
                "total": event.total,
                "shipping_method": event.shipping_method,
                "estimated_delivery": _date(event.estimated_delivery),
            },
        )

    @handle(OrderShipped)
    def on_order_shipped(self, event: OrderShipped) -> None:
        NotificationDispatcher().send(
            NotificationType.SHIPPING_UPDATE.value,
            event.owner_id,
            context={
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_name": event.customer_name,
                "tracking_number": event.tracking_number,
                "shipping_method": event.shipping_method,
                "estimated_delivery": _date(event.estimated_delivery),
            },
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        NotificationDispatcher().send(
            NotificationType.ORDER_CANCELLATION.value,
            event.owner_id,
            context={
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_name": event.customer_name,
                "cancelled_by": event.cancelled_by,
                "total": event.total,
                "items": _items(event.items),
            },
        )
