"""
Main Orchestrator for Spend Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Expense recording (persist → evaluate → notify)
2. Ledger maintenance (list, delete, weekly limit)
3. Authentication (email + password → user id)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only a failed write fails a record call
- Anything after the write is best-effort and only audited
- Every step is audited

Each record call runs as one sequential pass with no locking. Two
concurrent calls for the same user may both see the same weekly total;
duplicate or missed notifications in that case are accepted.
"""

import datetime as dt
from typing import Optional
from uuid import UUID

from spend_tracker.audit import AuditLogger, create_correlation_id
from spend_tracker.auth import AuthenticationError, BcryptCredentialVerifier
from spend_tracker.config import Settings, get_settings
from spend_tracker.evaluation import EvaluationError, ThresholdEvaluator
from spend_tracker.models.expense import (
    Classification,
    Expense,
    NewExpense,
    Notification,
    ThresholdEvaluation,
)
from spend_tracker.services.notifications import (
    NotificationChannelInterface,
    NotificationError,
    RabbitMQNotificationChannel,
)
from spend_tracker.services.storage import (
    AuditStorageInterface,
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
    StorageError,
)


NOTIFICATION_MESSAGES = {
    Classification.EXCEEDED: "You have exceeded your weekly expense limit!",
    Classification.APPROACHING: "You are nearing your weekly expense limit!",
}


class PersistFailure(Exception):
    """The expense could not be written. Nothing else was attempted."""

    def __init__(self, message: str, cause: Optional[StorageError] = None):
        super().__init__(message)
        self.cause = cause


def build_notification(evaluation: ThresholdEvaluation) -> Optional[Notification]:
    """Notification for an evaluation, or None when nothing should be sent."""
    message = NOTIFICATION_MESSAGES.get(evaluation.classification)
    if message is None:
        return None
    return Notification(
        user_id=evaluation.user_id,
        message=message,
        current_expenses=evaluation.weekly_total,
        limit=evaluation.weekly_limit,
    )


class ExpenseRecordingFlow:
    """
    Orchestrates expense recording.

    Flow:
    1. Persist → Ledger assigns identity (failure here fails the call)
    2. Evaluate → Weekly total vs weekly limit
    3. Notify → Only for APPROACHING / EXCEEDED, only with a channel
    4. Return the persisted expense

    Steps 2 and 3 can fail without affecting the result.
    The recorded expense is never rolled back.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        evaluator: Optional[ThresholdEvaluator] = None,
        notification_channel: Optional[NotificationChannelInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        notify_on_threshold: bool = True,
    ):
        self._ledger = ledger
        self._evaluator = evaluator or ThresholdEvaluator(ledger)
        self._channel = notification_channel
        # Local-only logging when none is given
        self._audit_logger = audit_logger or AuditLogger()
        self._notify_on_threshold = notify_on_threshold

    async def record_expense(
        self,
        user_id: int,
        amount: int,
        expense_date: dt.date,
        category: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record an expense and, if warranted, notify about the weekly limit.

        Returns:
            The persisted expense with its store-assigned identity

        Raises:
            PersistFailure: If the ledger write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            expense = await self._ledger.create_expense(NewExpense(
                user_id=user_id,
                amount=amount,
                date=expense_date,
                category=category,
            ))
        except StorageError as e:
            await self._audit_logger.log_record_failed(
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise PersistFailure(f"Failed to create expense: {e}", cause=e) from e

        await self._audit_logger.log_expense_recorded(
            expense_id=expense.id,
            user_id=user_id,
            amount=amount,
            correlation_id=correlation_id,
        )

        if not self._notify_on_threshold:
            return expense

        evaluation = await self._evaluate(user_id, correlation_id)
        if evaluation is not None:
            await self._notify(evaluation, correlation_id)

        return expense

    async def _evaluate(
        self,
        user_id: int,
        correlation_id: UUID,
    ) -> Optional[ThresholdEvaluation]:
        try:
            evaluation = await self._evaluator.evaluate(user_id)
        except EvaluationError as e:
            await self._audit_logger.log_evaluation_failed(
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return None

        await self._audit_logger.log_threshold_evaluated(
            user_id=user_id,
            classification=evaluation.classification.value,
            weekly_total=evaluation.weekly_total,
            weekly_limit=evaluation.weekly_limit,
            correlation_id=correlation_id,
        )
        return evaluation

    async def _notify(
        self,
        evaluation: ThresholdEvaluation,
        correlation_id: UUID,
    ) -> None:
        notification = build_notification(evaluation)
        if notification is None:
            return

        if self._channel is None:
            await self._audit_logger.log_notification_skipped(
                user_id=evaluation.user_id,
                reason="no notification channel configured",
                correlation_id=correlation_id,
            )
            return

        try:
            await self._channel.publish(notification)
        except NotificationError as e:
            await self._audit_logger.log_notification_failed(
                user_id=evaluation.user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return

        await self._audit_logger.log_notification_published(
            user_id=evaluation.user_id,
            message=notification.message,
            correlation_id=correlation_id,
        )


class ExpenseLedgerFlow:
    """
    Caller-facing reads and updates on the ledger.

    NotFoundError and StorageError propagate to the caller unchanged.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        evaluator: Optional[ThresholdEvaluator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._evaluator = evaluator or ThresholdEvaluator(ledger)
        self._audit_logger = audit_logger

    async def list_expenses(
        self,
        user_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> list[Expense]:
        correlation_id = correlation_id or create_correlation_id()
        expenses = await self._ledger.list_expenses(user_id)

        if self._audit_logger:
            await self._audit_logger.log_expenses_listed(
                user_id=user_id,
                result_count=len(expenses),
                correlation_id=correlation_id,
            )
        return expenses

    async def delete_expense(
        self,
        expense_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            NotFoundError: If the expense doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._ledger.delete_expense(expense_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )

    async def get_weekly_limit(self, user_id: int) -> int:
        return await self._ledger.get_weekly_limit(user_id)

    async def set_weekly_limit(
        self,
        user_id: int,
        new_limit: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Raises:
            NotFoundError: If the user doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()
        await self._ledger.set_weekly_limit(user_id, new_limit)

        if self._audit_logger:
            await self._audit_logger.log_limit_updated(
                user_id=user_id,
                new_limit=new_limit,
                correlation_id=correlation_id,
            )

    async def weekly_status(self, user_id: int) -> ThresholdEvaluation:
        """
        Current weekly total, limit and classification, for display.

        Raises:
            EvaluationError: If the ledger could not be read
        """
        return await self._evaluator.evaluate(user_id)


class AuthenticationFlow:
    """
    Email + password sign-in.

    The password check itself is delegated to the credential verifier.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        verifier: Optional[BcryptCredentialVerifier] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._verifier = verifier or BcryptCredentialVerifier()
        self._audit_logger = audit_logger

    async def authenticate(
        self,
        email: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Returns:
            The user's id

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            user = await self._ledger.get_user_by_email(email)
        except NotFoundError:
            await self._reject(email, "user not found", correlation_id)
            raise AuthenticationError("User not found")

        if not self._verifier.verify(password, user.password_hash):
            await self._reject(email, "password mismatch", correlation_id)
            raise AuthenticationError("Invalid email or password")

        if self._audit_logger:
            await self._audit_logger.log_user_authenticated(
                user_id=user.id,
                correlation_id=correlation_id,
            )
        return user.id

    async def _reject(self, email: str, reason: str, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_authentication_failed(
                email=email,
                reason=reason,
                correlation_id=correlation_id,
            )


def _create_storage(
    settings: Settings,
) -> tuple[LedgerStorageInterface, Optional[AuditStorageInterface]]:
    backend = settings.app.storage_backend

    if backend == "memory":
        return InMemoryLedgerStorage(), InMemoryAuditStorage()

    if backend == "google_sheets":
        client = GoogleSheetsClient()
        return GoogleSheetsLedgerStorage(client), GoogleSheetsAuditStorage(client)

    database = SqlDatabase()
    database.create_schema()
    return SqlLedgerStorage(database), SqlAuditStorage(database)


async def create_app_components(
    settings: Optional[Settings] = None,
    use_notifications: Optional[bool] = None,
) -> tuple[
    ExpenseRecordingFlow,
    ExpenseLedgerFlow,
    AuthenticationFlow,
    Optional[NotificationChannelInterface],
]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to wire from (defaults to get_settings()).
        use_notifications: Override settings.app.notifications_enabled.

    Returns:
        (recording_flow, ledger_flow, authentication_flow, notification_channel)
    """
    settings = settings or get_settings()
    app_settings = settings.app
    if use_notifications is None:
        use_notifications = app_settings.notifications_enabled

    ledger, audit_storage = _create_storage(settings)
    audit_logger = AuditLogger(
        audit_storage if app_settings.persist_audit_events else None
    )

    channel = None
    if use_notifications:
        rabbitmq = RabbitMQNotificationChannel()
        try:
            rabbitmq.connect()
            channel = rabbitmq
        except NotificationError as e:
            # Recording still works; notifications are skipped and audited
            await audit_logger.log_external_service_error(
                service="rabbitmq",
                error_message=str(e),
            )

    evaluator = ThresholdEvaluator(
        ledger,
        approaching_percent=app_settings.approaching_threshold_percent,
    )

    recording_flow = ExpenseRecordingFlow(
        ledger=ledger,
        evaluator=evaluator,
        notification_channel=channel,
        audit_logger=audit_logger,
        notify_on_threshold=use_notifications,
    )
    ledger_flow = ExpenseLedgerFlow(
        ledger=ledger,
        evaluator=evaluator,
        audit_logger=audit_logger,
    )
    authentication_flow = AuthenticationFlow(
        ledger=ledger,
        audit_logger=audit_logger,
    )

    return recording_flow, ledger_flow, authentication_flow, channel
