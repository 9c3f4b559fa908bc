"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the ledger must conform to these schemas.
"""

from finance_tracker.models.ledger import (
    END_OF_DAY,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    ZERO,
    Account,
    AccountId,
    BalanceCheck,
    BudgetGoal,
    Category,
    DateRange,
    LedgerSnapshot,
    MonthlyEntry,
    MonthSummary,
    PeriodComparison,
    ReportingPeriod,
    Totals,
    Transaction,
    TransactionDraft,
    TransactionType,
    categories_for,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "END_OF_DAY",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "ZERO",
    "Account",
    "AccountId",
    "BalanceCheck",
    "BudgetGoal",
    "Category",
    "DateRange",
    "LedgerSnapshot",
    "MonthlyEntry",
    "MonthSummary",
    "PeriodComparison",
    "ReportingPeriod",
    "Totals",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "categories_for",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
