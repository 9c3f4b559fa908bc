"""Ledger package: transactions, accounts and balance bookkeeping."""

from finance_tracker.ledger.accounts import DEFAULT_ACCOUNT_NAMES, AccountRegistry
from finance_tracker.ledger.balance import BalanceMaintainer
from finance_tracker.ledger.store import LedgerStore

__all__ = [
    "DEFAULT_ACCOUNT_NAMES",
    "AccountRegistry",
    "BalanceMaintainer",
    "LedgerStore",
]
