"""Notification dispatcher port: fire-and-forget messages to users."""

from abc import ABC, abstractmethod
from enum import Enum


class NotificationKind(Enum):
    ORDER = "order"
    PAYMENT = "payment"
    GENERAL = "general"


class NotificationDispatcher(ABC):
    """Abstract interface for notification delivery adapters."""

    @abstractmethod
    def notify(
        self,
        recipient_id: str,
        kind: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> dict:
        """Deliver one notification.

        Returns:
            dict with keys: notification_id, status ("sent" or "failed"), error (optional)
        """
        ...
