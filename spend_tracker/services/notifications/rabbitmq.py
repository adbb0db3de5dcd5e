"""
RabbitMQ Notification Channel

Publishes threshold notifications as JSON to a durable, named queue on
the default exchange. A separate consumer (email, push, ...) picks them up;
delivery is decoupled from the request that triggered it.

Only the startup connection is retried. Each publish is a single attempt,
and a broken connection is re-opened (once) on the next publish.
"""

from typing import Callable, Optional

import pika
import structlog
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError
from tenacity import Retrying, stop_after_attempt, wait_exponential

from spend_tracker.config import get_settings
from spend_tracker.models.expense import Notification
from spend_tracker.services.notifications.interface import (
    ChannelConnectionError,
    NotificationChannelInterface,
    NotificationError,
)


class RabbitMQNotificationChannel(NotificationChannelInterface):
    """
    Notification channel backed by a RabbitMQ queue.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        queue_name: Optional[str] = None,
        durable: Optional[bool] = None,
        connection_factory: Optional[Callable[[pika.URLParameters], pika.BlockingConnection]] = None,
    ):
        settings = get_settings().rabbitmq
        self._url = url or settings.url
        self._queue_name = queue_name or settings.queue_name
        self._durable = settings.durable if durable is None else durable
        self._connect_attempts = settings.connect_attempts
        self._connection_factory = connection_factory or pika.BlockingConnection

        self._connection: Optional[pika.BlockingConnection] = None
        self._channel: Optional[BlockingChannel] = None
        self._logger = structlog.get_logger(__name__)

    @property
    def queue_name(self) -> str:
        return self._queue_name

    def _open(self) -> BlockingChannel:
        """Open connection and channel, and declare the queue. One attempt."""
        try:
            connection = self._connection_factory(pika.URLParameters(self._url))
        except AMQPError as e:
            raise ChannelConnectionError(f"Failed to connect to RabbitMQ: {e}")

        try:
            channel = connection.channel()
            channel.queue_declare(queue=self._queue_name, durable=self._durable)
        except AMQPError as e:
            connection.close()
            raise ChannelConnectionError(f"Failed to declare queue {self._queue_name}: {e}")

        self._connection = connection
        self._channel = channel
        return channel

    def connect(self) -> None:
        """
        Connect at startup, retrying with exponential backoff.
        """
        for attempt in Retrying(
            stop=stop_after_attempt(self._connect_attempts),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            reraise=True,
        ):
            with attempt:
                self._open()

        self._logger.info(
            "notification_channel_connected",
            queue=self._queue_name,
        )

    def _current_channel(self) -> BlockingChannel:
        if self._channel is not None and self._channel.is_open:
            return self._channel
        self.close()
        return self._open()

    async def publish(self, notification: Notification) -> None:
        """Send one notification. Raises NotificationError on failure."""
        channel = self._current_channel()

        try:
            channel.basic_publish(
                exchange="",
                routing_key=self._queue_name,
                body=notification.to_message_body(),
                properties=pika.BasicProperties(
                    content_type="application/json",
                    delivery_mode=pika.DeliveryMode.Persistent,
                ),
            )
        except AMQPError as e:
            # Release the broken connection; the next publish reconnects once
            self.close()
            raise NotificationError(f"Failed to publish notification: {e}")

        self._logger.info(
            "notification_published",
            queue=self._queue_name,
            user_id=notification.user_id,
            current_expenses=notification.current_expenses,
            limit=notification.limit,
        )

    def close(self) -> None:
        """Close channel and connection."""
        channel, connection = self._channel, self._connection
        self._channel = None
        self._connection = None

        for handle in (channel, connection):
            if handle is None or not handle.is_open:
                continue
            try:
                handle.close()
            except AMQPError as e:
                self._logger.warning("notification_channel_close_failed", error=str(e))
