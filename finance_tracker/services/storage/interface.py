"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from storage implementation

The ledger sees storage as a small document store: named collections
(transactions, budgets, accounts, settings) holding JSON-like documents
keyed by id. The one non-trivial requirement is commit(): a batch of
writes that is applied completely or not at all, so a transaction and
the balance change it causes are never visible separately.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finance_tracker.models.audit import AuditEvent


# Collection names
TRANSACTIONS = "transactions"
BUDGETS = "budgets"
ACCOUNTS = "accounts"
SETTINGS = "settings"


class WriteKind(str, Enum):
    """What a single write in a commit does."""
    INSERT = "insert"  # Fails if the document exists
    UPDATE = "update"  # Fails if the document is missing
    SET = "set"        # Insert or replace
    DELETE = "delete"  # Fails if the document is missing


class DocumentWrite(BaseModel):
    """One write inside an atomic commit."""

    kind: WriteKind
    collection: str
    doc_id: str = Field(..., min_length=1)
    data: Optional[dict[str, Any]] = None

    @classmethod
    def insert(cls, collection: str, doc_id: str, data: dict) -> "DocumentWrite":
        return cls(kind=WriteKind.INSERT, collection=collection, doc_id=doc_id, data=data)

    @classmethod
    def update(cls, collection: str, doc_id: str, data: dict) -> "DocumentWrite":
        return cls(kind=WriteKind.UPDATE, collection=collection, doc_id=doc_id, data=data)

    @classmethod
    def set(cls, collection: str, doc_id: str, data: dict) -> "DocumentWrite":
        return cls(kind=WriteKind.SET, collection=collection, doc_id=doc_id, data=data)

    @classmethod
    def delete(cls, collection: str, doc_id: str) -> "DocumentWrite":
        return cls(kind=WriteKind.DELETE, collection=collection, doc_id=doc_id)


class DocumentStoreInterface(ABC):
    """
    Abstract interface for the document store.

    Any storage implementation (Google Sheets, in-memory, a database)
    must implement get_document, list_documents and commit. The single
    document writes are expressed as one-element commits.
    """

    @abstractmethod
    async def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        """
        Retrieve a document by id.

        Returns:
            A copy of the document, or None if it doesn't exist

        Raises:
            StorageError: If the backend read fails
        """
        pass

    @abstractmethod
    async def list_documents(self, collection: str) -> list[dict]:
        """
        List every document of a collection.

        Returns:
            Copies of the documents in insertion order

        Raises:
            StorageError: If the backend read fails
        """
        pass

    @abstractmethod
    async def commit(self, writes: list[DocumentWrite]) -> None:
        """
        Apply a batch of writes atomically.

        Either every write is applied or none is.

        Raises:
            NotFoundError: An update/delete targets a missing document
            DuplicateError: An insert targets an existing document
            StorageError: If the backend write fails
        """
        pass

    async def insert_document(self, collection: str, doc_id: str, data: dict) -> None:
        await self.commit([DocumentWrite.insert(collection, doc_id, data)])

    async def update_document(self, collection: str, doc_id: str, data: dict) -> None:
        await self.commit([DocumentWrite.update(collection, doc_id, data)])

    async def set_document(self, collection: str, doc_id: str, data: dict) -> None:
        await self.commit([DocumentWrite.set(collection, doc_id, data)])

    async def delete_document(self, collection: str, doc_id: str) -> None:
        await self.commit([DocumentWrite.delete(collection, doc_id)])


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


def apply_writes(
    tables: dict[str, dict[str, dict]],
    writes: list[DocumentWrite],
) -> None:
    """
    Apply writes to in-memory tables ({collection: {doc_id: document}}).

    Every write is checked against the state left by the writes before
    it, and nothing is modified unless all checks pass. Backends call this
    on a working copy and only publish the copy when it returns.
    """
    # Check pass: simulate existence without touching the tables
    present: dict[tuple[str, str], bool] = {}
    for write in writes:
        key = (write.collection, write.doc_id)
        exists = present.get(key, write.doc_id in tables.get(write.collection, {}))
        if write.kind == WriteKind.INSERT and exists:
            raise DuplicateError(f"{write.collection}/{write.doc_id} already exists")
        if write.kind in (WriteKind.UPDATE, WriteKind.DELETE) and not exists:
            raise NotFoundError(f"{write.collection}/{write.doc_id} not found")
        if write.kind != WriteKind.DELETE and write.data is None:
            raise StorageError(f"{write.kind.value} of {write.collection}/{write.doc_id} has no data")
        present[key] = write.kind != WriteKind.DELETE

    for write in writes:
        table = tables.setdefault(write.collection, {})
        if write.kind == WriteKind.DELETE:
            del table[write.doc_id]
        else:
            table[write.doc_id] = dict(write.data)
