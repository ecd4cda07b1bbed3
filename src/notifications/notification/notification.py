"""Notification message — one rendered message for one recipient.

Notifications are built from domain events by the handlers in
``notifications.notification.ordering_events`` and handed to the configured
notifier. Delivery is best-effort: the commerce flows that raised the
events never fail because of a notification.
"""

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    ORDER_CONFIRMATION = "order_confirmation"
    ORDER_CANCELLATION = "order_cancellation"
    SHIPPING_UPDATE = "shipping_update"
    LOW_STOCK_ALERT = "low_stock_alert"


class NotificationChannel(Enum):
    EMAIL = "Email"
    SLACK = "Slack"


class RecipientType(Enum):
    CUSTOMER = "Customer"
    INTERNAL = "Internal"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
class Notification(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    notification_type: NotificationType
    channel: NotificationChannel
    recipient_id: str
    recipient_type: RecipientType = RecipientType.CUSTOMER
    subject: str
    body: str
    context: dict = Field(default_factory=dict)

    def as_payload(self) -> dict:
        return {
            "notification_id": self.id,
            "channel": self.channel.value,
            "recipient_id": self.recipient_id,
            "recipient_type": self.recipient_type.value,
            "subject": self.subject,
            "body": self.body,
            "context": self.context,
        }
