"""Input validation package."""

from finance_tracker.validation.validator import (
    InvalidDateError,
    LedgerValidator,
    ValidationError,
    ValidationIssue,
    issues_from_pydantic,
)

__all__ = [
    "InvalidDateError",
    "LedgerValidator",
    "ValidationError",
    "ValidationIssue",
    "issues_from_pydantic",
]
