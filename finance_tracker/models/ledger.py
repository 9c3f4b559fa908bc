"""
Core Data Models for Finance Tracker

These models define the strict schemas for all data flowing through the ledger.
They are designed to:
1. Enforce the transaction invariants at construction time
2. Provide clear validation error messages
3. Serialize to the document layout used by every storage backend
4. Keep derived values (budget spent) out of persisted data

DESIGN DECISION: Amounts are always positive Decimals.
The sign of a transaction is derived from its type, never stored.
"""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from dateutil.relativedelta import relativedelta
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


ZERO = Decimal("0")

# Inclusive end of a reporting day (millisecond precision)
END_OF_DAY = time(23, 59, 59, 999000)

MIN_YEAR = 1900
MAX_YEAR = 2100

PositiveAmount = Annotated[
    Decimal,
    Field(gt=0, description="Strictly positive amount"),
]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Transaction categories.

    The set is closed. Each transaction type accepts a subset of it,
    see EXPENSE_CATEGORIES and INCOME_CATEGORIES.
    """
    FOOD = "Food"
    RENT_MORTGAGE = "Rent/Mortgage"
    TRANSPORTATION = "Transportation"
    UTILITIES = "Utilities"
    HEALTHCARE = "Healthcare"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    SALARY = "Salary"
    INVESTMENTS = "Investments"
    GIFTS = "Gifts"
    FREELANCE = "Freelance"
    DIVIDENDS = "Dividends"
    SIDE_HUSTLE = "Side Hustle"
    EDUCATION = "Education"
    PERSONAL_CARE = "Personal Care"
    SUBSCRIPTIONS = "Subscriptions"
    TRAVEL = "Travel"
    AIR_FRESHENERS = "Air Fresheners"
    FD_RETURNS = "FD Returns"
    INVESTMENT_RETURNS = "Investment Returns"
    OTHER = "Other"


class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def sign(self) -> int:
        """+1 for income, -1 for expense."""
        return 1 if self is TransactionType.INCOME else -1


class AccountId(str, Enum):
    """
    The fixed set of balance-holding accounts.

    Display names are looked up from configuration, not stored here.
    """
    PRIMARY = "primary"
    CASH = "cash"


EXPENSE_CATEGORIES: frozenset[Category] = frozenset({
    Category.FOOD,
    Category.RENT_MORTGAGE,
    Category.TRANSPORTATION,
    Category.UTILITIES,
    Category.HEALTHCARE,
    Category.ENTERTAINMENT,
    Category.SHOPPING,
    Category.GIFTS,
    Category.EDUCATION,
    Category.PERSONAL_CARE,
    Category.SUBSCRIPTIONS,
    Category.TRAVEL,
    Category.AIR_FRESHENERS,
    Category.INVESTMENTS,
    Category.OTHER,
})

INCOME_CATEGORIES: frozenset[Category] = frozenset({
    Category.SALARY,
    Category.FREELANCE,
    Category.DIVIDENDS,
    Category.SIDE_HUSTLE,
    Category.GIFTS,
    Category.FD_RETURNS,
    Category.INVESTMENT_RETURNS,
    Category.OTHER,
})


def categories_for(transaction_type: TransactionType) -> frozenset[Category]:
    """Categories a transaction of the given type may use."""
    if transaction_type is TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


def to_naive(value: datetime) -> datetime:
    """Aware datetimes are converted to naive local wall time."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction as entered by the user, before it has an id.

    Validation here is the full set of transaction invariants:
    positive amount, category valid for the type, known account.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    date: datetime = Field(
        ...,
        description="When the transaction happened (bucketed by calendar day)"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Free text description"
    )
    amount: PositiveAmount
    category: Category
    type: TransactionType
    account_id: AccountId = Field(
        default=AccountId.PRIMARY,
        description="Account the money moves through"
    )
    vendor: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Vendor or payer, if known"
    )

    @field_validator("date", mode="before")
    @classmethod
    def promote_calendar_date(cls, v: Any) -> Any:
        """A bare date means midnight of that day."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min)
        return v

    @field_validator("date")
    @classmethod
    def strip_timezone(cls, v: datetime) -> datetime:
        return to_naive(v)

    @field_validator("vendor")
    @classmethod
    def blank_vendor_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def validate_category_for_type(self) -> "TransactionDraft":
        """Category must belong to the set allowed for the transaction type."""
        if self.category not in categories_for(self.type):
            raise ValueError(
                f"Category '{self.category.value}' is not valid for "
                f"{self.type.value} transactions"
            )
        return self


class Transaction(TransactionDraft):
    """
    A stored transaction.

    Immutable once created. Editing is delete + insert.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique transaction ID"
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the transaction was recorded"
    )

    @property
    def signed_amount(self) -> Decimal:
        """+amount for income, -amount for expense."""
        return self.amount * self.type.sign

    @property
    def is_expense(self) -> bool:
        return self.type is TransactionType.EXPENSE

    @classmethod
    def from_draft(cls, draft: TransactionDraft) -> "Transaction":
        return cls(**draft.model_dump())

    def to_document(self) -> dict:
        """Document layout used by the storage backends."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, doc: dict) -> "Transaction":
        return cls.model_validate(doc)


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(BaseModel):
    """
    A balance-holding account.

    The balance is a running total of signed transaction amounts
    plus any manual override.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: AccountId
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    balance: Decimal = Field(
        default=ZERO,
        description="Current balance (may be negative)"
    )

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, doc: dict) -> "Account":
        return cls.model_validate(doc)


class BalanceCheck(BaseModel):
    """Comparison of a stored balance with the one derived from the ledger."""

    account_id: AccountId
    stored: Decimal
    derived: Decimal

    @computed_field
    @property
    def consistent(self) -> bool:
        return self.stored == self.derived

    @property
    def difference(self) -> Decimal:
        return self.stored - self.derived


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetGoal(BaseModel):
    """
    A monthly spending cap for one expense category.

    CRITICAL: `spent` is a view. It is excluded from serialization
    and ignored when loading, so a stale stored value can never leak in.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique budget goal ID"
    )
    category: Category
    limit: PositiveAmount
    spent: Optional[Decimal] = Field(
        default=None,
        exclude=True,
        description="Derived spend for the reporting month"
    )

    @field_validator("category")
    @classmethod
    def validate_expense_category(cls, v: Category) -> Category:
        if v not in EXPENSE_CATEGORIES:
            raise ValueError(f"Budgets can only track expense categories, got '{v.value}'")
        return v

    @property
    def remaining(self) -> Optional[Decimal]:
        """Limit minus spent, None until spent has been attached."""
        if self.spent is None:
            return None
        return self.limit - self.spent

    @property
    def is_over_limit(self) -> bool:
        return self.spent is not None and self.spent > self.limit

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, doc: dict) -> "BudgetGoal":
        data = {k: v for k, v in doc.items() if k != "spent"}
        return cls.model_validate(data)


# =============================================================================
# SYSTEM CLOCK & DATE RANGES
# =============================================================================

class ReportingPeriod(BaseModel):
    """
    The (month, year) pair used as the default reporting window.

    Month is zero-based: 0 is January, 11 is December.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    month: int = Field(..., ge=0, le=11, alias="systemMonth")
    year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR, alias="systemYear")

    @classmethod
    def from_date(cls, day: date) -> "ReportingPeriod":
        return cls(month=day.month - 1, year=day.year)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month + 1, 1)

    @property
    def last_day(self) -> date:
        return self.first_day + relativedelta(months=1, days=-1)

    @property
    def label(self) -> str:
        """Human readable, e.g. 'March 2024'."""
        return self.first_day.strftime("%B %Y")

    def contains(self, moment: datetime) -> bool:
        return moment.year == self.year and moment.month - 1 == self.month

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class DateRange(BaseModel):
    """
    An inclusive reporting window.

    Calendar days (plain `date` values) cover the whole day: a start
    becomes 00:00 and an end becomes 23:59:59.999. Datetimes are kept
    as given; from_dates() moves a datetime end to the end of its day.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="before")
    @classmethod
    def expand_calendar_days(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        start, end = data.get("start"), data.get("end")
        if isinstance(start, date) and not isinstance(start, datetime):
            data["start"] = datetime.combine(start, time.min)
        if isinstance(end, date) and not isinstance(end, datetime):
            data["end"] = datetime.combine(end, END_OF_DAY)
        return data

    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError("Range end cannot be before start")
        return self

    @classmethod
    def from_dates(cls, start: date, end: date) -> "DateRange":
        if isinstance(start, datetime):
            start_at = to_naive(start)
        else:
            start_at = datetime.combine(start, time.min)
        end_day = end.date() if isinstance(end, datetime) else end
        return cls(start=start_at, end=datetime.combine(end_day, END_OF_DAY))

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def shift_years(self, years: int) -> "DateRange":
        """Move both endpoints by whole years (Feb 29 clamps to Feb 28)."""
        delta = relativedelta(years=years)
        return DateRange(start=self.start + delta, end=self.end + delta)


# =============================================================================
# REPORT MODELS
# =============================================================================

class Totals(BaseModel):
    """Income and expense totals for a window."""

    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class MonthlyEntry(Totals):
    """Totals for one calendar month of a year series."""

    month: int = Field(..., ge=0, le=11)


class PeriodComparison(BaseModel):
    """A window compared with the same window one year earlier."""

    current: Totals
    previous: Totals
    current_range: DateRange
    previous_range: DateRange


class MonthSummary(BaseModel):
    """Dashboard figures for the reporting month."""

    period: ReportingPeriod
    totals: Totals
    category_breakdown: dict[Category, Decimal] = Field(default_factory=dict)
    recent_transactions: list[Transaction] = Field(default_factory=list)


class LedgerSnapshot(BaseModel):
    """
    Everything an exporter needs, consistent as of generated_at.

    Budgets carry their spent value for the snapshot's system month.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    generated_at: datetime = Field(default_factory=datetime.utcnow)
    transactions: list[Transaction] = Field(default_factory=list)
    budgets: list[BudgetGoal] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)
    system_month: int = Field(..., ge=0, le=11)
    system_year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR)

    def to_export_dict(self) -> dict:
        """JSON-ready dict; budgets include their spent value."""
        data = self.model_dump(mode="json", by_alias=True)
        data["budgets"] = [
            {**budget.to_document(), "spent": str(budget.spent if budget.spent is not None else ZERO)}
            for budget in self.budgets
        ]
        return data
