"""
Input Validation

DESIGN DECISION: Every core operation validates its input up front and
raises ValidationError before touching storage. There is never a partial
state change caused by bad input.

Schema checks (types, positive amounts, category valid for the type) live
on the pydantic models themselves. This module turns raw input into those
models and converts pydantic's errors into our own ValidationError, which
carries a list of ValidationIssue for the calling layer to display.

IMPORTANT: Validation NEVER silently fixes issues.
"""

from collections.abc import Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.models.ledger import (
    MAX_YEAR,
    MIN_YEAR,
    AccountId,
    BudgetGoal,
    Category,
    DateRange,
    ReportingPeriod,
    TransactionDraft,
)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'greater_than', 'value_error')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationError(Exception):
    """Invalid input to a core operation. Raised before any mutation."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)

    def issues_as_dicts(self) -> list[dict]:
        return [issue.model_dump() for issue in self.issues]


class InvalidDateError(ValidationError):
    """System clock month/year out of range, or a malformed date."""
    pass


def issues_from_pydantic(exc: PydanticValidationError) -> list[ValidationIssue]:
    """Flatten pydantic's error list into ValidationIssue objects."""
    issues = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        issues.append(ValidationIssue(
            field=location,
            issue_type=error.get("type", "invalid"),
            message=error.get("msg", "Invalid value"),
        ))
    return issues


def _summary(prefix: str, issues: list[ValidationIssue]) -> str:
    details = "; ".join(f"{issue.field}: {issue.message}" for issue in issues)
    return f"{prefix}: {details}" if details else prefix


def _payload(data: Union[BaseModel, Mapping[str, Any]]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, Mapping):
        return dict(data)
    raise ValidationError(
        f"Expected a model or a mapping, got {type(data).__name__}",
        [ValidationIssue(field="__root__", issue_type="type_error", message="Unsupported input type")],
    )


class LedgerValidator:
    """
    Turns raw input into validated ledger models.

    Stateless; one shared instance is enough.
    """

    def transaction_draft(
        self,
        data: Union[TransactionDraft, Mapping[str, Any]],
    ) -> TransactionDraft:
        """
        Validate a transaction about to be inserted.

        Accepts a TransactionDraft (or Transaction, whose id is dropped)
        or a mapping of field names/aliases.
        """
        try:
            return TransactionDraft.model_validate(_payload(data))
        except PydanticValidationError as e:
            issues = issues_from_pydantic(e)
            raise ValidationError(_summary("Invalid transaction", issues), issues) from e

    def budget_goal(
        self,
        category: Union[Category, str],
        limit: Union[Decimal, float, int, str],
        budget_id: Optional[str] = None,
    ) -> BudgetGoal:
        """Validate a budget goal; category must be an expense category."""
        data: dict[str, Any] = {"category": category, "limit": limit}
        if budget_id is not None:
            data["id"] = budget_id
        try:
            return BudgetGoal.model_validate(data)
        except PydanticValidationError as e:
            issues = issues_from_pydantic(e)
            raise ValidationError(_summary("Invalid budget goal", issues), issues) from e

    def category(self, value: Union[Category, str]) -> Category:
        try:
            return Category(value)
        except ValueError:
            issue = ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Unknown category {value!r}",
            )
            raise ValidationError(_summary("Invalid category", [issue]), [issue]) from None

    @staticmethod
    def _year_issue(year: Any) -> Optional[ValidationIssue]:
        if isinstance(year, bool) or not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
            return ValidationIssue(
                field="year",
                issue_type="out_of_range",
                message=f"Year must be an integer between {MIN_YEAR} and {MAX_YEAR}, got {year!r}",
            )
        return None

    def year(self, year: Any) -> int:
        """Validate a report year (1900-2100)."""
        issue = self._year_issue(year)
        if issue:
            raise InvalidDateError(_summary("Invalid year", [issue]), [issue])
        return year

    def reporting_period(self, month: Any, year: Any) -> ReportingPeriod:
        """Validate a system clock value (month 0-11, year 1900-2100)."""
        issues = []
        if isinstance(month, bool) or not isinstance(month, int) or not 0 <= month <= 11:
            issues.append(ValidationIssue(
                field="month",
                issue_type="out_of_range",
                message=f"Month must be an integer between 0 and 11, got {month!r}",
            ))
        year_issue = self._year_issue(year)
        if year_issue:
            issues.append(year_issue)
        if issues:
            raise InvalidDateError(_summary("Invalid system date", issues), issues)
        return ReportingPeriod(month=month, year=year)

    def account_id(self, value: Union[AccountId, str]) -> AccountId:
        try:
            return AccountId(value)
        except ValueError:
            issue = ValidationIssue(
                field="account_id",
                issue_type="unknown_account",
                message=f"Unknown account '{value}'. Valid: {', '.join(a.value for a in AccountId)}",
            )
            raise ValidationError(_summary("Invalid account", [issue]), [issue]) from None

    def balance(self, value: Union[Decimal, float, int, str]) -> Decimal:
        """Validate a manually entered balance (may be negative, must be finite)."""
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError):
            amount = None
        if amount is None or not amount.is_finite():
            issue = ValidationIssue(
                field="balance",
                issue_type="invalid_number",
                message=f"Balance must be a finite number, got {value!r}",
            )
            raise ValidationError(_summary("Invalid balance", [issue]), [issue])
        return amount

    def date_range(self, start: date, end: date) -> DateRange:
        """Build an inclusive range; end is moved to 23:59:59.999 of its day."""
        if not isinstance(start, date) or not isinstance(end, date):
            issue = ValidationIssue(
                field="range",
                issue_type="invalid_date",
                message="Range endpoints must be dates or datetimes",
            )
            raise InvalidDateError(_summary("Invalid date range", [issue]), [issue])
        try:
            return DateRange.from_dates(start, end)
        except PydanticValidationError as e:
            issues = issues_from_pydantic(e)
            raise InvalidDateError(_summary("Invalid date range", issues), issues) from e
