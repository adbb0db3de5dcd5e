"""
Audit Models for Spend Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all operations
2. Debugging information when things go wrong
3. Visibility into best-effort steps (evaluation, notification)
   that never surface to the caller as errors

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the record-evaluate-notify pipeline has its own event type.
    """
    # Recording
    EXPENSE_RECORDED = "expense_recorded"
    RECORD_FAILED = "record_failed"

    # Threshold evaluation
    THRESHOLD_EVALUATED = "threshold_evaluated"
    EVALUATION_FAILED = "evaluation_failed"

    # Notification
    NOTIFICATION_PUBLISHED = "notification_published"
    NOTIFICATION_FAILED = "notification_failed"
    NOTIFICATION_SKIPPED = "notification_skipped"

    # Ledger maintenance
    EXPENSES_LISTED = "expenses_listed"
    EXPENSE_DELETED = "expense_deleted"
    LIMIT_UPDATED = "limit_updated"

    # Authentication
    USER_AUTHENTICATED = "user_authenticated"
    AUTHENTICATION_FAILED = "authentication_failed"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'user')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one record call)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_recorded(expense_id, user_id, amount, correlation_id)
        event = AuditEventBuilder.evaluation_failed(user_id, error, correlation_id)
    """

    @staticmethod
    def expense_recorded(
        expense_id: int,
        user_id: int,
        amount: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense recorded for user {user_id}: {amount}",
            details={
                "user_id": user_id,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_failed(
        user_id: int,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description="Expense could not be persisted",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def threshold_evaluated(
        user_id: int,
        classification: str,
        weekly_total: int,
        weekly_limit: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.THRESHOLD_EVALUATED,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description=f"Weekly spend classified as {classification}",
            details={
                "classification": classification,
                "weekly_total": weekly_total,
                "weekly_limit": weekly_limit,
            },
        )

    @staticmethod
    def evaluation_failed(
        user_id: int,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVALUATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description="Threshold check could not be completed",
            error_message=error_message,
        )

    @staticmethod
    def notification_published(
        user_id: int,
        message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_PUBLISHED,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description="Threshold notification published",
            details={
                "message": message,
            },
        )

    @staticmethod
    def notification_failed(
        user_id: int,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description="Threshold notification could not be delivered",
            error_message=error_message,
        )

    @staticmethod
    def notification_skipped(
        user_id: int,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_SKIPPED,
            severity=AuditSeverity.DEBUG,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description="Threshold notification skipped",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def expenses_listed(
        user_id: int,
        result_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_LISTED,
            severity=AuditSeverity.DEBUG,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description=f"Listed {result_count} expenses",
            details={
                "result_count": result_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=str(expense_id),
            correlation_id=correlation_id,
            description=f"Expense {expense_id} deleted",
            is_user_action=True,
        )

    @staticmethod
    def limit_updated(
        user_id: int,
        new_limit: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIMIT_UPDATED,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description=f"Weekly limit set to {new_limit}",
            details={
                "new_limit": new_limit,
            },
            is_user_action=True,
        )

    @staticmethod
    def user_authenticated(
        user_id: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_AUTHENTICATED,
            entity_type="user",
            entity_id=str(user_id),
            correlation_id=correlation_id,
            description="User signed in",
            is_user_action=True,
        )

    @staticmethod
    def authentication_failed(
        email: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHENTICATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            correlation_id=correlation_id,
            description="Sign-in rejected",
            details={
                "email": email,
                "reason": reason,
            },
            is_user_action=True,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
