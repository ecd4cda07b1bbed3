"""Notifier registry — singleton access to the configured notifier.

Uses the fake notifier by default; a real adapter (email provider, Slack
API) plugs in behind ``NotificationPort``.
"""

from notifications.channel.port import NotificationPort

_notifier: NotificationPort | None = None


def get_notifier() -> NotificationPort:
    """Return the configured notifier (singleton)."""
    global _notifier
    if _notifier is None:
        from notifications.channel.fake import FakeNotifier

        _notifier = FakeNotifier()
    return _notifier


def set_notifier(notifier: NotificationPort) -> None:
    global _notifier
    _notifier = notifier


def reset_notifier():
    """Reset the notifier singleton (useful for testing)."""
    global _notifier
    _notifier = None
