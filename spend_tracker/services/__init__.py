"""Services package."""

from spend_tracker.services.notifications import (
    ChannelConnectionError,
    InMemoryNotificationChannel,
    NotificationChannelInterface,
    NotificationError,
    RabbitMQNotificationChannel,
)
from spend_tracker.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    SqlAuditStorage,
    SqlDatabase,
    SqlLedgerStorage,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Notification services
    "ChannelConnectionError",
    "InMemoryNotificationChannel",
    "NotificationChannelInterface",
    "NotificationError",
    "RabbitMQNotificationChannel",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "SqlAuditStorage",
    "SqlDatabase",
    "SqlLedgerStorage",
    "StorageConnectionError",
    "StorageError",
]
