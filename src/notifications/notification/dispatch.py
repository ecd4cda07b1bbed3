"""Notification dispatch — renders a template and hands it to the notifier.

Dispatch is fire-and-forget from the caller's point of view. A notifier
that reports a failed delivery, or that raises, is logged here and the
call returns normally: the order or stock change that triggered the
notification has already been committed and must not be undone by it.
"""

import structlog

from notifications.channel import get_notifier
from notifications.channel.port import NotificationPort
from notifications.notification.notification import (
    Notification,
    NotificationChannel,
    NotificationType,
    RecipientType,
)
from notifications.templates import get_template

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(self, notifier: NotificationPort | None = None):
        self.notifier = notifier or get_notifier()

    def send(self, notification_type: str, recipient_id: str, context: dict) -> Notification:
        template_cls = get_template(notification_type)
        content = template_cls.render(context)
        notification = Notification(
            notification_type=NotificationType(notification_type),
            channel=NotificationChannel(template_cls.default_channel),
            recipient_id=str(recipient_id),
            recipient_type=RecipientType(getattr(template_cls, "recipient_type", RecipientType.CUSTOMER.value)),
            subject=content["subject"],
            body=content["body"],
            context=context,
        )

        try:
            result = self.notifier.notify(notification_type, notification.as_payload())
        except Exception:
            logger.exception(
                "Notifier raised while sending notification",
                notification_type=notification_type,
                recipient_id=notification.recipient_id,
            )
            return notification

        if result.get("status") == "sent":
            logger.info(
                "Notification sent",
                notification_type=notification_type,
                recipient_id=notification.recipient_id,
                message_id=result.get("message_id"),
            )
        else:
            logger.warning(
                "Notification delivery failed",
                notification_type=notification_type,
                recipient_id=notification.recipient_id,
                error=result.get("error", "Unknown dispatch error"),
            )
        return notification
