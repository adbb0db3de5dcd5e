"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The relational (SQLAlchemy) backend is the default; Google Sheets and
in-memory backends implement the same interfaces.
"""

from spend_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    week_window,
)
from spend_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from spend_tracker.services.storage.sql import (
    SqlAuditStorage,
    SqlDatabase,
    SqlLedgerStorage,
)
from spend_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "week_window",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    # SQL implementation
    "SqlAuditStorage",
    "SqlDatabase",
    "SqlLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
