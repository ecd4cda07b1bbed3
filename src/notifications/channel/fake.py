"""Fake notifier — records notifications for testing and local development."""

from uuid import uuid4

from notifications.channel.port import NotificationPort


class NotifierUnavailable(Exception):
    """Raised by the fake notifier when configured to fail hard."""


class FakeNotifier(NotificationPort):
    """Notifier that records messages in memory for test assertions."""

    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.should_raise = False
        self.failure_reason = "Notification delivery failed"

    def configure(
        self,
        should_succeed: bool = True,
        should_raise: bool = False,
        failure_reason: str = "Notification delivery failed",
    ):
        """Configure the fake adapter behavior for testing.

        ``should_succeed=False`` reports a failed delivery; ``should_raise``
        simulates an unreachable channel.
        """
        self.should_succeed = should_succeed
        self.should_raise = should_raise
        self.failure_reason = failure_reason

    def notify(self, event: str, payload: dict) -> dict:
        if self.should_raise:
            raise NotifierUnavailable(self.failure_reason)

        if not self.should_succeed:
            return {
                "message_id": None,
                "status": "failed",
                "error": self.failure_reason,
            }

        message_id = f"notification-{uuid4().hex[:12]}"
        self.sent.append({"message_id": message_id, "event": event, **payload})

        return {"message_id": message_id, "status": "sent"}

    def sent_for(self, event: str) -> list[dict]:
        return [record for record in self.sent if record["event"] == event]

    def reset(self):
        """Clear sent notifications (useful between tests)."""
        self.sent.clear()
        self.should_succeed = True
        self.should_raise = False
        self.failure_reason = "Notification delivery failed"
