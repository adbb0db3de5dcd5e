"""
Abstract Notification Channel

Fire-and-forget delivery of threshold notifications to an external
consumer. Callers make one publish attempt and treat any
NotificationError as non-fatal.
"""

from abc import ABC, abstractmethod

from spend_tracker.models.expense import Notification


class NotificationChannelInterface(ABC):
    """
    Abstract interface for notification delivery.

    Implementations must not wait for consumer acknowledgement
    beyond the send call itself, and must not retry.
    """

    @abstractmethod
    async def publish(self, notification: Notification) -> None:
        """
        Hand a notification to the channel.

        Raises:
            NotificationError: If the message could not be sent
        """
        pass

    def close(self) -> None:
        """Release any held resources."""
        pass


class NotificationError(Exception):
    """Base exception for notification delivery."""
    pass


class ChannelConnectionError(NotificationError):
    """Could not connect to the notification backend."""
    pass
