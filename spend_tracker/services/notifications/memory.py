"""In-memory notification channel for tests and local demos."""

from typing import Optional

from spend_tracker.models.expense import Notification
from spend_tracker.services.notifications.interface import (
    NotificationChannelInterface,
    NotificationError,
)


class InMemoryNotificationChannel(NotificationChannelInterface):
    """
    Collects published notifications in a list.

    Set `fail_with` to make every publish raise NotificationError.
    """

    def __init__(self, fail_with: Optional[str] = None):
        self.published: list[Notification] = []
        self.fail_with = fail_with
        self.closed = False

    async def publish(self, notification: Notification) -> None:
        if self.fail_with is not None:
            raise NotificationError(self.fail_with)
        self.published.append(notification)

    def close(self) -> None:
        self.closed = True
