"""Notifier port — abstract interface for the notification sender collaborator."""

from abc import ABC, abstractmethod


class NotificationPort(ABC):
    """Abstract interface for notification dispatch adapters."""

    @abstractmethod
    def notify(self, event: str, payload: dict) -> dict:
        """Send a notification for ``event``.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
