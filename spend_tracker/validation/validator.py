"""
Input Validation for the Caller-Facing Layer

DESIGN DECISION: The recording flow accepts any integer amount. Rejecting
bad input is the job of whoever talks to the user, so validation lives
here and the UI runs it before calling the flows.

Errors block the action:
- Negative amounts
- Category labels that are too long
- Negative weekly limits

Warnings only inform:
- Zero amounts
- Unusually large amounts
- Dates too far in the future

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from datetime import date, timedelta
from typing import Optional

from spend_tracker.config import AppSettings, get_settings
from spend_tracker.models.validation import ValidationIssue, ValidationResult


class ExpenseValidator:
    """Checks expense and limit input before it reaches the flows."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate_expense(
        self,
        amount: int,
        expense_date: date,
        category: str = "",
        today: Optional[date] = None,
    ) -> ValidationResult:
        today = today or date.today()
        issues = []

        if amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="negative",
                message="Amount cannot be negative",
                suggested_fix="Enter the amount you spent as a positive number",
            ))
        elif amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="zero",
                message="Amount is zero",
                severity="warning",
            ))
        elif amount > self._settings.max_expense_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future_date = today + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if expense_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if len(category.strip()) > self._settings.max_category_length:
            issues.append(ValidationIssue(
                field="category",
                issue_type="too_long",
                message=(
                    f"Category is longer than "
                    f"{self._settings.max_category_length} characters"
                ),
                suggested_fix="Use a shorter label",
            ))

        return ValidationResult(
            is_valid=not any(i.severity == "error" for i in issues),
            issues=issues,
        )

    def validate_limit(self, new_limit: int) -> ValidationResult:
        issues = []
        if new_limit < 0:
            issues.append(ValidationIssue(
                field="new_limit",
                issue_type="negative",
                message="Weekly limit cannot be negative",
                suggested_fix="Use 0 to switch the limit off",
            ))
        return ValidationResult(is_valid=not issues, issues=issues)

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """Text shown next to the form."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []
        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
