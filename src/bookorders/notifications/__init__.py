"""Notification dispatcher registry.

Uses the recording fake by default; a real push/email dispatcher can be
installed with set_dispatcher() at startup.
"""

from bookorders.notifications import fake_dispatcher
from bookorders.notifications.port import NotificationDispatcher

_current_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _current_dispatcher
    if _current_dispatcher is None:
        _current_dispatcher = fake_dispatcher.FakeNotificationDispatcher()
    return _current_dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher) -> None:
    global _current_dispatcher
    _current_dispatcher = dispatcher


def reset_dispatcher() -> None:
    global _current_dispatcher
    _current_dispatcher = None
