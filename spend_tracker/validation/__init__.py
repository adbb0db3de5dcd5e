"""Input validation package."""

from spend_tracker.validation.validator import ExpenseValidator

__all__ = ["ExpenseValidator"]
