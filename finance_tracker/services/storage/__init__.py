"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory backend and a Google Sheets backend; the ledger only
ever talks to the interfaces.
"""

from finance_tracker.services.storage.interface import (
    ACCOUNTS,
    BUDGETS,
    SETTINGS,
    TRANSACTIONS,
    AuditStorageInterface,
    ConnectionError,
    DocumentStoreInterface,
    DocumentWrite,
    DuplicateError,
    NotFoundError,
    StorageError,
    WriteKind,
    apply_writes,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)

__all__ = [
    # Collections
    "ACCOUNTS",
    "BUDGETS",
    "SETTINGS",
    "TRANSACTIONS",
    # Interfaces
    "AuditStorageInterface",
    "DocumentStoreInterface",
    "DocumentWrite",
    "WriteKind",
    "apply_writes",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
]
