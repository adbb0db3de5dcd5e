"""
Tests for the expense flows

The recording flow is exercised end to end with in-memory backends:
a failed write fails the call, anything after the write only shows up
in the audit trail.
"""

from datetime import date

import pytest

from spend_tracker.audit import create_correlation_id
from spend_tracker.auth import AuthenticationError, BcryptCredentialVerifier
from spend_tracker.config import Settings
from spend_tracker.evaluation import EvaluationError
from spend_tracker.models.audit import AuditEventType
from spend_tracker.models.expense import Classification, NewExpense
from spend_tracker.orchestrator import (
    AuthenticationFlow,
    ExpenseLedgerFlow,
    ExpenseRecordingFlow,
    PersistFailure,
    create_app_components,
)
from spend_tracker.services.notifications import (
    ChannelConnectionError,
    InMemoryNotificationChannel,
)
from spend_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    NotFoundError,
    StorageError,
)

from tests.conftest import TODAY


def event_types(audit_storage):
    return [e.event_type for e in audit_storage.events]


async def seed(ledger, user_id, amount):
    await ledger.create_expense(NewExpense(user_id=user_id, amount=amount, date=TODAY))


@pytest.fixture
def flow(ledger, channel, audit_logger):
    return ExpenseRecordingFlow(
        ledger=ledger,
        notification_channel=channel,
        audit_logger=audit_logger,
    )


class TestRecordExpense:
    """Tests for persist -> evaluate -> notify."""

    @pytest.mark.asyncio
    async def test_below_threshold_sends_nothing(self, flow, ledger, user, channel):
        expense = await flow.record_expense(
            user_id=user.id, amount=50, expense_date=TODAY
        )

        assert expense.id is not None
        assert expense.amount == 50
        assert channel.published == []

    @pytest.mark.asyncio
    async def test_approaching_sends_notification(self, flow, ledger, user, channel):
        await seed(ledger, user.id, 30)

        await flow.record_expense(user_id=user.id, amount=55, expense_date=TODAY)

        assert len(channel.published) == 1
        notification = channel.published[0]
        assert notification.user_id == user.id
        assert notification.message == "You are nearing your weekly expense limit!"
        assert notification.current_expenses == 85
        assert notification.limit == 100

    @pytest.mark.asyncio
    async def test_exceeded_sends_notification(self, flow, ledger, user, channel):
        await seed(ledger, user.id, 90)

        await flow.record_expense(user_id=user.id, amount=20, expense_date=TODAY)

        assert len(channel.published) == 1
        notification = channel.published[0]
        assert notification.message == "You have exceeded your weekly expense limit!"
        assert notification.current_expenses == 110
        assert notification.limit == 100

    @pytest.mark.asyncio
    async def test_evaluation_failure_keeps_the_expense(
        self, flow, ledger, user, channel, audit_storage
    ):
        async def broken_total(user_id):
            raise StorageError("store went away")

        ledger.get_weekly_total = broken_total

        expense = await flow.record_expense(
            user_id=user.id, amount=50, expense_date=TODAY
        )

        assert await ledger.list_expenses(user.id) == [expense]
        assert channel.published == []
        assert AuditEventType.EVALUATION_FAILED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_channel_failure_keeps_the_expense(
        self, ledger, user, audit_logger, audit_storage
    ):
        flow = ExpenseRecordingFlow(
            ledger=ledger,
            notification_channel=InMemoryNotificationChannel(fail_with="broker down"),
            audit_logger=audit_logger,
        )

        expense = await flow.record_expense(
            user_id=user.id, amount=95, expense_date=TODAY
        )

        assert await ledger.list_expenses(user.id) == [expense]
        failed = [
            e for e in audit_storage.events
            if e.event_type == AuditEventType.NOTIFICATION_FAILED
        ]
        assert len(failed) == 1
        assert failed[0].error_message == "broker down"

    @pytest.mark.asyncio
    async def test_persist_failure_stops_the_flow(
        self, flow, channel, audit_storage
    ):
        with pytest.raises(PersistFailure) as exc_info:
            await flow.record_expense(user_id=999, amount=500, expense_date=TODAY)

        assert isinstance(exc_info.value.cause, NotFoundError)
        assert channel.published == []
        assert event_types(audit_storage) == [AuditEventType.RECORD_FAILED]

    @pytest.mark.asyncio
    async def test_events_share_the_correlation_id(
        self, flow, ledger, user, audit_storage
    ):
        correlation_id = create_correlation_id()
        await seed(ledger, user.id, 90)

        await flow.record_expense(
            user_id=user.id,
            amount=20,
            expense_date=TODAY,
            correlation_id=correlation_id,
        )

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.EXPENSE_RECORDED,
            AuditEventType.THRESHOLD_EVALUATED,
            AuditEventType.NOTIFICATION_PUBLISHED,
        ]
        assert events[1].details["classification"] == "exceeded"

    @pytest.mark.asyncio
    async def test_no_channel_skips_notification(
        self, ledger, user, audit_logger, audit_storage
    ):
        flow = ExpenseRecordingFlow(ledger=ledger, audit_logger=audit_logger)

        await flow.record_expense(user_id=user.id, amount=150, expense_date=TODAY)

        assert AuditEventType.NOTIFICATION_SKIPPED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_notifications_disabled_skips_evaluation(
        self, ledger, user, channel, audit_logger, audit_storage
    ):
        flow = ExpenseRecordingFlow(
            ledger=ledger,
            notification_channel=channel,
            audit_logger=audit_logger,
            notify_on_threshold=False,
        )

        await flow.record_expense(user_id=user.id, amount=150, expense_date=TODAY)

        assert channel.published == []
        assert event_types(audit_storage) == [AuditEventType.EXPENSE_RECORDED]

    @pytest.mark.asyncio
    async def test_no_limit_never_notifies(self, flow, ledger, channel):
        user = ledger.add_user(
            name="Ravi",
            email="ravi@example.com",
            password_hash="x",
            weekly_spending_limit=0,
        )

        await flow.record_expense(user_id=user.id, amount=10_000, expense_date=TODAY)

        assert channel.published == []

    @pytest.mark.asyncio
    async def test_recorded_expense_round_trips(self, flow, ledger, user):
        expense = await flow.record_expense(
            user_id=user.id,
            amount=1250,
            expense_date=date(2024, 5, 14),
            category="  Groceries ",
        )

        listed = await ledger.list_expenses(user.id)

        assert listed == [expense]
        assert listed[0].category == "  Groceries "
        assert listed[0].date == date(2024, 5, 14)


class TestExpenseLedgerFlow:
    """Tests for list, delete and weekly limit."""

    @pytest.mark.asyncio
    async def test_list_and_delete(self, ledger, user, audit_logger, audit_storage):
        flow = ExpenseLedgerFlow(ledger, audit_logger=audit_logger)
        await seed(ledger, user.id, 10)
        await seed(ledger, user.id, 20)

        expenses = await flow.list_expenses(user.id)
        assert [e.amount for e in expenses] == [10, 20]

        await flow.delete_expense(expenses[0].id)

        assert [e.amount for e in await flow.list_expenses(user.id)] == [20]
        assert AuditEventType.EXPENSE_DELETED in event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_delete_missing_expense_raises(self, ledger, user):
        flow = ExpenseLedgerFlow(ledger)
        with pytest.raises(NotFoundError):
            await flow.delete_expense(12345)

    @pytest.mark.asyncio
    async def test_set_limit_changes_classification(
        self, ledger, user, audit_logger, audit_storage
    ):
        flow = ExpenseLedgerFlow(ledger, audit_logger=audit_logger)
        await seed(ledger, user.id, 150)
        assert (await flow.weekly_status(user.id)).classification == Classification.EXCEEDED

        await flow.set_weekly_limit(user.id, 1000)

        assert await flow.get_weekly_limit(user.id) == 1000
        assert (await flow.weekly_status(user.id)).classification == Classification.NORMAL
        limit_events = [
            e for e in audit_storage.events
            if e.event_type == AuditEventType.LIMIT_UPDATED
        ]
        assert limit_events[0].details["new_limit"] == 1000

    @pytest.mark.asyncio
    async def test_set_limit_for_unknown_user_raises(self, ledger):
        flow = ExpenseLedgerFlow(ledger)
        with pytest.raises(NotFoundError):
            await flow.set_weekly_limit(999, 100)

    @pytest.mark.asyncio
    async def test_weekly_status_for_unknown_user_raises(self, ledger):
        flow = ExpenseLedgerFlow(ledger)
        with pytest.raises(EvaluationError):
            await flow.weekly_status(999)


class TestAuthenticationFlow:
    """Tests for email + password sign-in."""

    @pytest.fixture
    def verifier(self):
        return BcryptCredentialVerifier(rounds=4)

    @pytest.fixture
    def ledger_with_user(self, verifier):
        ledger = InMemoryLedgerStorage(clock=lambda: TODAY)
        ledger.add_user(
            name="Asha",
            email="asha@example.com",
            password_hash=verifier.hash_password("correct horse"),
        )
        return ledger

    @pytest.mark.asyncio
    async def test_valid_credentials_return_user_id(
        self, ledger_with_user, verifier, audit_logger, audit_storage
    ):
        flow = AuthenticationFlow(ledger_with_user, verifier, audit_logger)

        user_id = await flow.authenticate("asha@example.com", "correct horse")

        assert user_id == 1
        assert event_types(audit_storage) == [AuditEventType.USER_AUTHENTICATED]

    @pytest.mark.asyncio
    async def test_wrong_password_rejected(
        self, ledger_with_user, verifier, audit_logger, audit_storage
    ):
        flow = AuthenticationFlow(ledger_with_user, verifier, audit_logger)

        with pytest.raises(AuthenticationError):
            await flow.authenticate("asha@example.com", "battery staple")

        assert event_types(audit_storage) == [AuditEventType.AUTHENTICATION_FAILED]
        assert audit_storage.events[0].details["reason"] == "password mismatch"

    @pytest.mark.asyncio
    async def test_unknown_email_rejected(self, ledger_with_user, verifier):
        flow = AuthenticationFlow(ledger_with_user, verifier)

        with pytest.raises(AuthenticationError, match="User not found"):
            await flow.authenticate("nobody@example.com", "correct horse")


class TestCreateAppComponents:
    """Tests for wiring from configuration."""

    @pytest.mark.asyncio
    async def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")

        recording_flow, ledger_flow, auth_flow, channel = await create_app_components(
            Settings(), use_notifications=False
        )

        assert channel is None
        assert await ledger_flow.list_expenses(1) == []

    @pytest.mark.asyncio
    async def test_sql_backend_creates_schema(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "sql")
        monkeypatch.setenv("DATABASE_URL", "sqlite://")

        recording_flow, ledger_flow, auth_flow, channel = await create_app_components(
            Settings(), use_notifications=False
        )

        with pytest.raises(PersistFailure):
            await recording_flow.record_expense(
                user_id=1, amount=10, expense_date=TODAY
            )

    @pytest.mark.asyncio
    async def test_unreachable_broker_is_audited(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("PERSIST_AUDIT_EVENTS", "true")

        class UnreachableChannel(InMemoryNotificationChannel):
            def connect(self):
                raise ChannelConnectionError("Failed to connect to RabbitMQ: refused")

        monkeypatch.setattr(
            "spend_tracker.orchestrator.RabbitMQNotificationChannel",
            UnreachableChannel,
        )
        audit_storage = InMemoryAuditStorage()
        monkeypatch.setattr(
            "spend_tracker.orchestrator.InMemoryAuditStorage",
            lambda: audit_storage,
        )

        recording_flow, _, _, channel = await create_app_components(
            Settings(), use_notifications=True
        )

        assert channel is None
        [event] = audit_storage.events
        assert event.event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
        assert event.details == {"service": "rabbitmq"}
        assert "refused" in event.error_message
