"""
Core Data Models for Spend Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Be serializable for storage, logging and messaging
3. Keep secrets (password hashes) out of every outward representation

DESIGN DECISION: Amounts are integers in minor currency units.
There is no floating point anywhere in the threshold arithmetic.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Classification(str, Enum):
    """
    Where the weekly total sits relative to the weekly limit.

    Only APPROACHING and EXCEEDED produce a notification.
    """
    NORMAL = "normal"
    APPROACHING = "approaching"  # strictly above the approaching threshold
    EXCEEDED = "exceeded"        # strictly above the limit itself

    @property
    def should_notify(self) -> bool:
        return self is not Classification.NORMAL


# =============================================================================
# LEDGER MODELS
# =============================================================================

class NewExpense(BaseModel):
    """
    Caller-supplied expense fields, before the store assigns an identity.

    The model does not reject negative amounts; that check belongs to
    the caller-facing layer (see ExpenseValidator).
    """

    user_id: int = Field(
        ...,
        description="Owner of the expense"
    )
    amount: int = Field(
        ...,
        description="Amount in minor currency units"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date, used for week bucketing"
    )
    category: str = Field(
        default="",
        description="Free-form label, may be empty"
    )


class Expense(NewExpense):
    """
    A persisted expense.

    Identity is assigned by the ledger store and never changes.
    Expenses are never mutated in place; they are created or deleted.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(
        ...,
        description="Store-assigned identity"
    )


class User(BaseModel):
    """
    A ledger user.

    Users are provisioned outside the expense flows. Only the weekly
    limit is mutable, and only through an explicit set-limit call.
    """

    id: int
    name: str
    email: str = Field(
        ...,
        description="Unique, used as the login key"
    )
    password_hash: str = Field(
        ...,
        exclude=True,
        repr=False,
        description="Opaque credential secret, never serialized"
    )
    weekly_spending_limit: int = Field(
        default=0,
        description="Weekly limit in minor units; 0 means no limit configured"
    )


# =============================================================================
# THRESHOLD MODELS
# =============================================================================

class ThresholdEvaluation(BaseModel):
    """Result of comparing a user's weekly total with their weekly limit."""

    user_id: int
    classification: Classification
    weekly_total: int
    weekly_limit: int

    @property
    def has_limit(self) -> bool:
        return self.weekly_limit > 0

    @property
    def usage_ratio(self) -> Optional[float]:
        """Share of the limit spent so far (for display only)."""
        if not self.has_limit:
            return None
        return self.weekly_total / self.weekly_limit


class Notification(BaseModel):
    """
    Message handed to the notification channel.

    Ephemeral: built from the evaluation that triggered it and never
    stored by the core. The JSON form uses exactly these field names.
    """

    user_id: int
    message: str
    current_expenses: int = Field(
        ...,
        description="Weekly total at evaluation time"
    )
    limit: int = Field(
        ...,
        description="Weekly limit at evaluation time"
    )

    def to_message_body(self) -> bytes:
        """Serialize for the broker."""
        return self.model_dump_json().encode("utf-8")
