"""
In-Memory Storage Implementation

Dict-backed ledger and audit storage. State lives only as long as the
process, which makes it suitable for tests and local demos.
"""

from datetime import date
from typing import Callable, Optional
from uuid import UUID

from spend_tracker.config import get_settings
from spend_tracker.models.audit import AuditEvent
from spend_tracker.models.expense import Expense, NewExpense, User
from spend_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    week_window,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """In-memory implementation of the expense ledger."""

    def __init__(self, clock: Optional[Callable[[], date]] = None):
        self._clock = clock or date.today
        self._users: dict[int, User] = {}
        self._expenses: dict[int, Expense] = {}
        self._next_user_id = 1
        self._next_expense_id = 1

    def add_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        weekly_spending_limit: Optional[int] = None,
    ) -> User:
        """
        Provision a user. Not part of the ledger interface.

        Without an explicit limit the configured default_weekly_limit applies.
        """
        if weekly_spending_limit is None:
            weekly_spending_limit = get_settings().app.default_weekly_limit

        if any(u.email == email for u in self._users.values()):
            raise DuplicateError(f"Email already registered: {email}")

        user = User(
            id=self._next_user_id,
            name=name,
            email=email,
            password_hash=password_hash,
            weekly_spending_limit=weekly_spending_limit,
        )
        self._users[user.id] = user
        self._next_user_id += 1
        return user

    async def create_expense(self, expense: NewExpense) -> Expense:
        if expense.user_id not in self._users:
            raise NotFoundError(f"No user found with ID {expense.user_id}")

        stored = Expense(id=self._next_expense_id, **expense.model_dump())
        self._expenses[stored.id] = stored
        self._next_expense_id += 1
        return stored

    async def list_expenses(self, user_id: int) -> list[Expense]:
        return [
            e for _, e in sorted(self._expenses.items())
            if e.user_id == user_id
        ]

    async def delete_expense(self, expense_id: int) -> None:
        if self._expenses.pop(expense_id, None) is None:
            raise NotFoundError(f"No expense found with ID {expense_id}")

    async def get_weekly_limit(self, user_id: int) -> int:
        return self._get_user(user_id).weekly_spending_limit

    async def set_weekly_limit(self, user_id: int, new_limit: int) -> None:
        user = self._get_user(user_id)
        self._users[user_id] = user.model_copy(
            update={"weekly_spending_limit": new_limit}
        )

    async def get_weekly_total(self, user_id: int) -> int:
        start, end = week_window(self._clock())
        return sum(
            e.amount for e in self._expenses.values()
            if e.user_id == user_id and start <= e.date < end
        )

    async def get_user_by_email(self, email: str) -> User:
        for user in self._users.values():
            if user.email == email:
                return user
        raise NotFoundError(f"User not found: {email}")

    def _get_user(self, user_id: int) -> User:
        try:
            return self._users[user_id]
        except KeyError:
            raise NotFoundError(f"User with ID {user_id} not found")


class InMemoryAuditStorage(AuditStorageInterface):
    """In-memory, append-only audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
