"""Tests for the audit logger."""

import pytest

from spend_tracker.audit import AuditLogger, create_correlation_id
from spend_tracker.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from spend_tracker.services.storage import StorageError


class BrokenAuditStorage:
    async def append_event(self, event):
        raise StorageError("audit sheet unavailable")


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_persists_events(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()

        await audit_logger.log_expense_recorded(
            expense_id=3, user_id=1, amount=250, correlation_id=correlation_id
        )

        [event] = audit_storage.events
        assert event.event_type == AuditEventType.EXPENSE_RECORDED
        assert event.correlation_id == correlation_id
        assert event.details == {"user_id": 1, "amount": 250}

    @pytest.mark.asyncio
    async def test_without_storage_logs_locally(self):
        audit_logger = AuditLogger()

        event = AuditEventBuilder.notification_skipped(
            user_id=1,
            reason="no notification channel configured",
            correlation_id=create_correlation_id(),
        )

        assert await audit_logger.log(event) is True

    @pytest.mark.asyncio
    async def test_storage_failure_is_swallowed(self):
        audit_logger = AuditLogger(BrokenAuditStorage())

        await audit_logger.log_evaluation_failed(
            user_id=1,
            error_message="Error calculating weekly expenses",
            correlation_id=create_correlation_id(),
        )

    @pytest.mark.asyncio
    async def test_log_reports_storage_outcome(self, audit_logger):
        event = AuditEventBuilder.expense_deleted(
            expense_id=1, correlation_id=create_correlation_id()
        )

        assert await audit_logger.log(event) is True
        assert await AuditLogger(BrokenAuditStorage()).log(event) is False

    @pytest.mark.asyncio
    async def test_external_service_error(self, audit_logger, audit_storage):
        await audit_logger.log_external_service_error(
            service="rabbitmq",
            error_message="connection refused",
        )

        [event] = audit_storage.events
        assert event.event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "connection refused"
        assert event.details == {"service": "rabbitmq"}

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()
