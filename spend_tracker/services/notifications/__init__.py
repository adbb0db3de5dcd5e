"""Notification channel services package."""

from spend_tracker.services.notifications.interface import (
    ChannelConnectionError,
    NotificationChannelInterface,
    NotificationError,
)
from spend_tracker.services.notifications.memory import InMemoryNotificationChannel
from spend_tracker.services.notifications.rabbitmq import RabbitMQNotificationChannel

__all__ = [
    "ChannelConnectionError",
    "InMemoryNotificationChannel",
    "NotificationChannelInterface",
    "NotificationError",
    "RabbitMQNotificationChannel",
]
