"""
Report Aggregation

Pure reducers over a list of transactions and an inclusive date range.
Range ends are end-of-day (23:59:59.999), see DateRange.from_dates().

Every report is re-derived from the full transaction list on each call
(O(n) per call). All sums are commutative, so the order of the input
list never changes a result.
"""

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from finance_tracker.models.ledger import (
    ZERO,
    Category,
    DateRange,
    MonthlyEntry,
    MonthSummary,
    PeriodComparison,
    ReportingPeriod,
    Totals,
    Transaction,
    TransactionType,
)
from finance_tracker.validation import LedgerValidator


class RangePreset(str, Enum):
    """Named report windows, relative to a reference day."""
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    THIS_YEAR = "this_year"
    LAST_YEAR = "last_year"


def month_range(period: ReportingPeriod) -> DateRange:
    """The whole calendar month of a reporting period."""
    return DateRange.from_dates(period.first_day, period.last_day)


def date_range_preset(
    preset: Union[RangePreset, str],
    reference: Optional[date] = None,
) -> DateRange:
    """
    Build a preset window around `reference` (defaults to today).

    Raises:
        ValueError: Unknown preset name
    """
    preset = RangePreset(preset)
    today = reference or date.today()

    if preset is RangePreset.TODAY:
        return DateRange.from_dates(today, today)
    if preset is RangePreset.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return DateRange.from_dates(yesterday, yesterday)
    if preset is RangePreset.THIS_MONTH:
        return month_range(ReportingPeriod.from_date(today))
    if preset is RangePreset.LAST_MONTH:
        return month_range(ReportingPeriod.from_date(today - relativedelta(months=1)))
    if preset is RangePreset.THIS_YEAR:
        return DateRange.from_dates(date(today.year, 1, 1), date(today.year, 12, 31))
    # LAST_YEAR
    return DateRange.from_dates(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))


class ReportAggregator:
    """Read-only reports over a fixed list of transactions."""

    def __init__(self, transactions: Iterable[Transaction], validator: Optional[LedgerValidator] = None):
        self._transactions = tuple(transactions)
        self._validator = validator or LedgerValidator()

    def _within(self, date_range: DateRange) -> list[Transaction]:
        return [tx for tx in self._transactions if date_range.contains(tx.date)]

    @staticmethod
    def _sum_totals(transactions: Iterable[Transaction]) -> Totals:
        income = ZERO
        expense = ZERO
        for tx in transactions:
            if tx.type is TransactionType.INCOME:
                income += tx.amount
            else:
                expense += tx.amount
        return Totals(income=income, expense=expense)

    def totals(self, date_range: DateRange) -> Totals:
        """Income and expense sums within the range."""
        return self._sum_totals(self._within(date_range))

    def category_breakdown(self, date_range: DateRange) -> dict[Category, Decimal]:
        """
        Expense total per category within the range.

        Ordered by descending total, ties by category name. Categories
        with no expenses are absent; an empty range gives an empty dict.
        """
        spending: dict[Category, Decimal] = {}
        for tx in self._within(date_range):
            if tx.is_expense:
                spending[tx.category] = spending.get(tx.category, ZERO) + tx.amount
        ordered = sorted(spending.items(), key=lambda item: (-item[1], item[0].value))
        return dict(ordered)

    def monthly_series(self, year: int) -> list[MonthlyEntry]:
        """
        Twelve entries, months 0..11, zero-filled.

        Raises:
            InvalidDateError: Year outside 1900-2100
        """
        year = self._validator.year(year)
        buckets = {month: [] for month in range(12)}
        for tx in self._transactions:
            if tx.date.year == year:
                buckets[tx.date.month - 1].append(tx)
        entries = []
        for month, transactions in buckets.items():
            totals = self._sum_totals(transactions)
            entries.append(MonthlyEntry(month=month, income=totals.income, expense=totals.expense))
        return entries

    def period_over_period(self, date_range: DateRange) -> PeriodComparison:
        """
        The range compared with the same range one year earlier.

        Both endpoints move back exactly one year. The two windows are
        summed independently, so a range longer than a year counts the
        overlapping transactions in both.
        """
        previous_range = date_range.shift_years(-1)
        return PeriodComparison(
            current=self.totals(date_range),
            previous=self.totals(previous_range),
            current_range=date_range,
            previous_range=previous_range,
        )

    def recent(self, limit: int = 5) -> list[Transaction]:
        """Newest transactions by date, ties in insertion order."""
        if limit <= 0:
            return []
        return sorted(self._transactions, key=lambda tx: tx.date, reverse=True)[:limit]

    def month_summary(self, period: ReportingPeriod, recent_limit: int = 5) -> MonthSummary:
        """Dashboard figures for the reporting month."""
        window = month_range(period)
        return MonthSummary(
            period=period,
            totals=self.totals(window),
            category_breakdown=self.category_breakdown(window),
            recent_transactions=self.recent(recent_limit),
        )
