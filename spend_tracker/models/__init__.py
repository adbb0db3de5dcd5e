"""
Data Models Package

This package contains all Pydantic models used in the Spend Tracker system.
All data flowing through the system must conform to these schemas.
"""

from spend_tracker.models.expense import (
    Classification,
    Expense,
    NewExpense,
    Notification,
    ThresholdEvaluation,
    User,
)
from spend_tracker.models.validation import ValidationIssue, ValidationResult
from spend_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Classification",
    "Expense",
    "NewExpense",
    "Notification",
    "ThresholdEvaluation",
    "User",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
