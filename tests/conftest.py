"""
Shared fixtures.

Everything runs against the in-memory backends; no network, no API keys.
"""

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config.settings import LedgerSettings
from finance_tracker.ledger import AccountRegistry, LedgerStore
from finance_tracker.orchestrator import FinanceTracker
from finance_tracker.services.storage import InMemoryAuditStorage, InMemoryDocumentStore

from tests.helpers import TODAY


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def accounts(store, audit_logger):
    return AccountRegistry(store, audit_logger=audit_logger)


@pytest.fixture
def ledger(store, accounts, audit_logger):
    return LedgerStore(store, accounts, audit_logger=audit_logger)


@pytest.fixture
def ledger_settings():
    return LedgerSettings(
        auto_advance_to_real_date=True,
        storage_backend="memory",
        primary_account_name="Main Account",
        cash_account_name="Cash",
        recent_transactions_limit=5,
    )


@pytest.fixture
def tracker(store, ledger_settings, audit_logger):
    return FinanceTracker(
        store,
        settings=ledger_settings,
        audit_logger=audit_logger,
        today=lambda: TODAY,
    )
