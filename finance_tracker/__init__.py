"""
Finance Tracker - Source Package

A personal finance tracker core: a ledger of income and expense
transactions, running account balances, monthly budget goals and
period-based reports.

DESIGN PRINCIPLES:
1. Balances never drift from transaction history
2. Derived values (budget spent, report totals) are computed on read
3. Invalid input fails before any mutation
4. AI category suggestions are advisory only
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
