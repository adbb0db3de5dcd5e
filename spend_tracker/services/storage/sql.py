"""
Relational Storage Implementation (SQLAlchemy)

DESIGN DECISION: The relational backend is the default because:
1. The weekly total is a single aggregate query
2. Identity assignment and foreign keys come from the database
3. Any SQLAlchemy URL works (SQLite locally, PostgreSQL in production)

Schema:
- users(id, name, email UNIQUE, password_hash, weekly_spending_limit)
- expenses(id, user_id -> users.id, amount, date, category)
- audit_events(event_id, timestamp, event_type, ...)

Each interface call opens its own short session. The persist-then-evaluate
sequence in the orchestrator is NOT one transaction.
"""

import datetime as dt
import json
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from spend_tracker.config import get_settings
from spend_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from spend_tracker.models.expense import Expense, NewExpense, User
from spend_tracker.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    week_window,
)


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(200))
    weekly_spending_limit: Mapped[int] = mapped_column(Integer, default=0)


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    amount: Mapped[int] = mapped_column(Integer)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    category: Mapped[str] = mapped_column(String(100), default="")


class AuditEventRow(Base):
    __tablename__ = "audit_events"

    event_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime, index=True)
    event_type: Mapped[str] = mapped_column(String(50))
    severity: Mapped[str] = mapped_column(String(20))
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    correlation_id: Mapped[Optional[str]] = mapped_column(
        String(36), nullable=True, index=True
    )
    description: Mapped[str] = mapped_column(String(500))
    details_json: Mapped[str] = mapped_column(Text, default="")
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_user_action: Mapped[bool] = mapped_column(Boolean, default=False)


class SqlDatabase:
    """
    Engine and session factory shared by the SQL storage classes.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None):
        settings = get_settings().database
        self._url = url or settings.url
        echo = settings.echo if echo is None else echo

        try:
            self._engine = self._create_engine(self._url, echo)
        except SQLAlchemyError as e:
            raise StorageConnectionError(f"Failed to connect to database: {e}")

        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every session sees an empty DB
                kwargs["poolclass"] = StaticPool
            return create_engine(url, echo=echo, **kwargs)
        return create_engine(url, echo=echo, pool_pre_ping=True)

    @property
    def engine(self) -> Engine:
        return self._engine

    def session(self):
        return self._session_factory()

    def create_schema(self) -> None:
        """Create missing tables."""
        try:
            Base.metadata.create_all(self._engine)
        except OperationalError as e:
            raise StorageConnectionError(f"Failed to create schema: {e}")

    def dispose(self) -> None:
        self._engine.dispose()


class SqlLedgerStorage(LedgerStorageInterface):
    """
    SQLAlchemy implementation of the expense ledger.
    """

    def __init__(
        self,
        database: Optional[SqlDatabase] = None,
        clock: Optional[Callable[[], dt.date]] = None,
    ):
        self._db = database or SqlDatabase()
        self._clock = clock or dt.date.today

    @staticmethod
    def _row_to_expense(row: ExpenseRow) -> Expense:
        return Expense(
            id=row.id,
            user_id=row.user_id,
            amount=row.amount,
            date=row.date,
            category=row.category or "",
        )

    @staticmethod
    def _row_to_user(row: UserRow) -> User:
        return User(
            id=row.id,
            name=row.name,
            email=row.email,
            password_hash=row.password_hash,
            weekly_spending_limit=row.weekly_spending_limit,
        )

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

        try:
            with self._db.session() as session:
                row = UserRow(
                    name=name,
                    email=email,
                    password_hash=password_hash,
                    weekly_spending_limit=weekly_spending_limit,
                )
                session.add(row)
                session.commit()
                return self._row_to_user(row)
        except IntegrityError:
            raise DuplicateError(f"Email already registered: {email}")
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to add user: {e}")

    async def create_expense(self, expense: NewExpense) -> Expense:
        try:
            with self._db.session() as session:
                if session.get(UserRow, expense.user_id) is None:
                    raise NotFoundError(f"No user found with ID {expense.user_id}")

                row = ExpenseRow(
                    user_id=expense.user_id,
                    amount=expense.amount,
                    date=expense.date,
                    category=expense.category,
                )
                session.add(row)
                session.commit()
                return self._row_to_expense(row)
        except IntegrityError as e:
            raise NotFoundError(f"Failed to create expense: {e}")
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create expense: {e}")

    async def list_expenses(self, user_id: int) -> list[Expense]:
        try:
            with self._db.session() as session:
                rows = session.scalars(
                    select(ExpenseRow)
                    .where(ExpenseRow.user_id == user_id)
                    .order_by(ExpenseRow.id)
                ).all()
                return [self._row_to_expense(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list expenses for user {user_id}: {e}")

    async def delete_expense(self, expense_id: int) -> None:
        try:
            with self._db.session() as session:
                result = session.execute(
                    delete(ExpenseRow).where(ExpenseRow.id == expense_id)
                )
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete expense: {e}")

        if result.rowcount == 0:
            raise NotFoundError(f"No expense found with ID {expense_id}")

    async def get_weekly_limit(self, user_id: int) -> int:
        try:
            with self._db.session() as session:
                limit = session.scalar(
                    select(UserRow.weekly_spending_limit).where(UserRow.id == user_id)
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to retrieve weekly limit: {e}")

        if limit is None:
            raise NotFoundError(f"User with ID {user_id} not found")
        return limit

    async def set_weekly_limit(self, user_id: int, new_limit: int) -> None:
        try:
            with self._db.session() as session:
                result = session.execute(
                    update(UserRow)
                    .where(UserRow.id == user_id)
                    .values(weekly_spending_limit=new_limit)
                )
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to set weekly spending limit: {e}")

        if result.rowcount == 0:
            raise NotFoundError(f"No user found with ID {user_id}")

    async def get_weekly_total(self, user_id: int) -> int:
        start, end = week_window(self._clock())
        try:
            with self._db.session() as session:
                total = session.scalar(
                    select(func.coalesce(func.sum(ExpenseRow.amount), 0))
                    .where(ExpenseRow.user_id == user_id)
                    .where(ExpenseRow.date >= start)
                    .where(ExpenseRow.date < end)
                )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to calculate weekly expenses: {e}")
        return int(total or 0)

    async def get_user_by_email(self, email: str) -> User:
        try:
            with self._db.session() as session:
                row = session.scalars(
                    select(UserRow).where(UserRow.email == email)
                ).first()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to look up user: {e}")

        if row is None:
            raise NotFoundError(f"User not found: {email}")
        return self._row_to_user(row)


class SqlAuditStorage(AuditStorageInterface):
    """
    SQLAlchemy implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, database: Optional[SqlDatabase] = None):
        self._db = database or SqlDatabase()

    @staticmethod
    def _event_to_row(event: AuditEvent) -> AuditEventRow:
        return AuditEventRow(
            event_id=str(event.event_id),
            timestamp=event.timestamp,
            event_type=event.event_type.value,
            severity=event.severity.value,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            correlation_id=str(event.correlation_id) if event.correlation_id else None,
            description=event.description,
            details_json=json.dumps(event.details) if event.details else "",
            error_message=event.error_message,
            is_user_action=event.is_user_action,
        )

    @staticmethod
    def _row_to_event(row: AuditEventRow) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(row.event_id),
            timestamp=row.timestamp,
            event_type=AuditEventType(row.event_type),
            severity=AuditSeverity(row.severity),
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            correlation_id=UUID(row.correlation_id) if row.correlation_id else None,
            description=row.description,
            details=json.loads(row.details_json) if row.details_json else {},
            error_message=row.error_message,
            is_user_action=row.is_user_action,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            with self._db.session() as session:
                session.add(self._event_to_row(event))
                session.commit()
            return True
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            with self._db.session() as session:
                rows = session.scalars(
                    select(AuditEventRow)
                    .where(AuditEventRow.correlation_id == str(correlation_id))
                    .order_by(AuditEventRow.timestamp)
                ).all()
                return [self._row_to_event(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            with self._db.session() as session:
                rows = session.scalars(
                    select(AuditEventRow)
                    .order_by(AuditEventRow.timestamp.desc())
                    .limit(limit)
                ).all()
                return [self._row_to_event(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get audit events: {e}")
