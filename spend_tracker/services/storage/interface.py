"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run the same flows on a relational database or on Google Sheets
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the expense flows need.
"""

from abc import ABC, abstractmethod
from datetime import date, timedelta
from uuid import UUID

from spend_tracker.models.audit import AuditEvent
from spend_tracker.models.expense import Expense, NewExpense, User


def week_window(today: date) -> tuple[date, date]:
    """
    Calendar week containing `today` as a half-open range [start, end).

    Weeks start on Monday, same as PostgreSQL's date_trunc('week', ...).
    """
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=7)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the expense ledger.

    Any storage implementation (SQL, Google Sheets, in-memory)
    must implement these methods.
    """

    @abstractmethod
    async def create_expense(self, expense: NewExpense) -> Expense:
        """
        Persist a new expense and assign its identity.

        Returns:
            The stored expense, including its identity

        Raises:
            NotFoundError: If the owning user does not exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_expenses(self, user_id: int) -> list[Expense]:
        """
        List every expense of a user, in store order (ascending identity).

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: int) -> None:
        """
        Delete an expense by identity.

        Raises:
            NotFoundError: If no expense was deleted
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    async def get_weekly_limit(self, user_id: int) -> int:
        """
        Get a user's weekly spending limit.

        Raises:
            NotFoundError: If the user doesn't exist
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def set_weekly_limit(self, user_id: int, new_limit: int) -> None:
        """
        Replace a user's weekly spending limit.

        Raises:
            NotFoundError: If no user row was affected
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def get_weekly_total(self, user_id: int) -> int:
        """
        Sum of the user's expense amounts dated within the current week.

        Returns 0 when there are no expenses; "no rows" is not an error.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User:
        """
        Look up a user by login email.

        Raises:
            NotFoundError: If no user has this email
            StorageError: If the read fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one record-expense call).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
