"""Aggregation package: budget spend and reports."""

from finance_tracker.aggregation.budgets import BudgetAggregator, BudgetRegistry
from finance_tracker.aggregation.reports import (
    RangePreset,
    ReportAggregator,
    date_range_preset,
    month_range,
)

__all__ = [
    "BudgetAggregator",
    "BudgetRegistry",
    "RangePreset",
    "ReportAggregator",
    "date_range_preset",
    "month_range",
]
