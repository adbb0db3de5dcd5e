"""Validation result models shared by the input validator and the UI."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single problem found in caller input."""

    field: str = Field(
        ...,
        description="Which input field has the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'negative', 'future_date')"
    )
    message: str = Field(
        ...,
        description="Human-readable description"
    )
    severity: Literal["error", "warning"] = Field(
        default="error",
        description="Errors block the action, warnings only inform"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of validating one piece of caller input."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
