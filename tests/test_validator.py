"""Tests for caller-facing input validation."""

from datetime import date, timedelta

import pytest

from spend_tracker.config import AppSettings
from spend_tracker.validation import ExpenseValidator

from tests.conftest import TODAY


@pytest.fixture
def validator():
    return ExpenseValidator(AppSettings(
        max_expense_amount=1_000,
        max_category_length=10,
        future_date_tolerance_days=7,
    ))


class TestExpenseValidator:
    """Tests for ExpenseValidator."""

    def test_valid_expense(self, validator):
        result = validator.validate_expense(
            amount=500, expense_date=TODAY, category="food", today=TODAY
        )
        assert result.is_valid is True
        assert result.issues == []
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed."

    def test_negative_amount_is_an_error(self, validator):
        result = validator.validate_expense(amount=-1, expense_date=TODAY, today=TODAY)
        assert result.is_valid is False
        assert result.issues[0].issue_type == "negative"

    def test_zero_amount_is_a_warning(self, validator):
        result = validator.validate_expense(amount=0, expense_date=TODAY, today=TODAY)
        assert result.is_valid is True
        assert result.warnings == ["Amount is zero"]

    def test_large_amount_is_a_warning(self, validator):
        result = validator.validate_expense(amount=1_001, expense_date=TODAY, today=TODAY)
        assert result.is_valid is True
        assert result.issues[0].issue_type == "suspicious_value"

    def test_future_date_within_tolerance(self, validator):
        result = validator.validate_expense(
            amount=5, expense_date=TODAY + timedelta(days=7), today=TODAY
        )
        assert result.issues == []

    def test_future_date_beyond_tolerance(self, validator):
        result = validator.validate_expense(
            amount=5, expense_date=TODAY + timedelta(days=8), today=TODAY
        )
        assert result.is_valid is True
        assert result.issues[0].issue_type == "future_date"

    def test_past_date_is_fine(self, validator):
        result = validator.validate_expense(
            amount=5, expense_date=date(2020, 1, 1), today=TODAY
        )
        assert result.issues == []

    def test_long_category_is_an_error(self, validator):
        result = validator.validate_expense(
            amount=5, expense_date=TODAY, category="x" * 11, today=TODAY
        )
        assert result.is_valid is False
        assert result.issues[0].field == "category"

    def test_summary_lists_errors_and_warnings(self, validator):
        result = validator.validate_expense(
            amount=-1,
            expense_date=TODAY + timedelta(days=30),
            today=TODAY,
        )
        summary = validator.get_user_friendly_summary(result)
        assert "Amount cannot be negative" in summary
        assert "is in the future" in summary

    def test_limit(self, validator):
        assert validator.validate_limit(0).is_valid is True
        assert validator.validate_limit(500).is_valid is True
        assert validator.validate_limit(-1).is_valid is False
