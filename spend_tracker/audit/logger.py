"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A record of best-effort steps (evaluation, notification) whose
   failures are never shown to the caller as errors

The audit logger:
- Is async so flows can await it inline
- Gracefully handles failures (doesn't break a flow if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from spend_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from spend_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

_LEVELS = {
    AuditSeverity.DEBUG: logging.DEBUG,
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("spend_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        self._logger.log(_LEVELS[event.severity], "audit_event", **event.to_log_dict())

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_recorded(
        self,
        expense_id: int,
        user_id: int,
        amount: int,
        correlation_id: UUID,
    ) -> None:
        """Log a persisted expense."""
        await self.log(AuditEventBuilder.expense_recorded(
            expense_id=expense_id,
            user_id=user_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_record_failed(
        self,
        user_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a failed expense write."""
        await self.log(AuditEventBuilder.record_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_threshold_evaluated(
        self,
        user_id: int,
        classification: str,
        weekly_total: int,
        weekly_limit: int,
        correlation_id: UUID,
    ) -> None:
        """Log a threshold classification."""
        await self.log(AuditEventBuilder.threshold_evaluated(
            user_id=user_id,
            classification=classification,
            weekly_total=weekly_total,
            weekly_limit=weekly_limit,
            correlation_id=correlation_id,
        ))

    async def log_evaluation_failed(
        self,
        user_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a threshold check that could not be completed."""
        await self.log(AuditEventBuilder.evaluation_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_notification_published(
        self,
        user_id: int,
        message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a delivered notification."""
        await self.log(AuditEventBuilder.notification_published(
            user_id=user_id,
            message=message,
            correlation_id=correlation_id,
        ))

    async def log_notification_failed(
        self,
        user_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a notification the channel rejected."""
        await self.log(AuditEventBuilder.notification_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_notification_skipped(
        self,
        user_id: int,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.notification_skipped(
            user_id=user_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_expenses_listed(
        self,
        user_id: int,
        result_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expenses_listed(
            user_id=user_id,
            result_count=result_count,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: int,
        correlation_id: UUID,
    ) -> None:
        """Log expense deletion."""
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_limit_updated(
        self,
        user_id: int,
        new_limit: int,
        correlation_id: UUID,
    ) -> None:
        """Log a weekly limit change."""
        await self.log(AuditEventBuilder.limit_updated(
            user_id=user_id,
            new_limit=new_limit,
            correlation_id=correlation_id,
        ))

    async def log_user_authenticated(
        self,
        user_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.user_authenticated(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_authentication_failed(
        self,
        email: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.authentication_failed(
            email=email,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
