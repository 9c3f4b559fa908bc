"""
In-Memory Storage Implementation

Used by the test suite and for local sessions that don't need
persistence. Documents are deep-copied on the way in and out so callers
can never mutate stored state behind the store's back.
"""

import copy
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    DocumentStoreInterface,
    DocumentWrite,
    apply_writes,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dict-backed document store with all-or-nothing commits."""

    def __init__(self, initial: Optional[dict[str, dict[str, dict]]] = None):
        self._tables: dict[str, dict[str, dict]] = copy.deepcopy(initial or {})

    async def get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._tables.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def list_documents(self, collection: str) -> list[dict]:
        return [copy.deepcopy(doc) for doc in self._tables.get(collection, {}).values()]

    async def commit(self, writes: list[DocumentWrite]) -> None:
        # Only the touched tables are copied; documents are replaced, never edited
        touched = {write.collection for write in writes}
        working = {name: dict(self._tables.get(name, {})) for name in touched}
        apply_writes(working, copy.deepcopy(writes))
        self._tables.update(working)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
