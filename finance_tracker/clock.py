"""
System Clock

The (month, year) pair used as the default reporting window. It is
independent of the real date: users may move it to review a past month.

DESIGN DECISION: Whether a stale stored value is advanced to the real
month on load is a configuration choice (LEDGER_AUTO_ADVANCE_TO_REAL_DATE).
With auto-advance on, a period chosen in an earlier session is replaced
by the current month the next time the clock loads.

Aggregators never read the clock themselves; callers pass the period in.
"""

from collections.abc import Callable
from datetime import date
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import ReportingPeriod
from finance_tracker.services.storage import SETTINGS, DocumentStoreInterface, StorageError
from finance_tracker.validation import LedgerValidator


logger = structlog.get_logger(__name__)

SYSTEM_DOCUMENT_ID = "system"


class SystemClock:
    """Persisted reporting period with optional auto-advance."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        auto_advance: bool = True,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._auto_advance = auto_advance
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()
        self._today = today
        self._period: Optional[ReportingPeriod] = None

    @property
    def auto_advance(self) -> bool:
        return self._auto_advance

    async def _persist(self, period: ReportingPeriod) -> None:
        await self._store.set_document(
            SETTINGS,
            SYSTEM_DOCUMENT_ID,
            {"id": SYSTEM_DOCUMENT_ID, **period.to_document()},
        )

    async def _audit(
        self,
        event_type: AuditEventType,
        old: Optional[ReportingPeriod],
        new: ReportingPeriod,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_system_clock_changed(
                event_type=event_type,
                old_period=(old.month, old.year) if old else None,
                new_period=(new.month, new.year),
                correlation_id=correlation_id,
            )

    @staticmethod
    def _parse(doc: dict[str, Any]) -> ReportingPeriod:
        try:
            return ReportingPeriod.model_validate(doc)
        except PydanticValidationError as e:
            raise StorageError(f"Stored system date is invalid: {doc}") from e

    async def load(self) -> ReportingPeriod:
        """
        Read the persisted period.

        Initializes it to the real month when absent. When present but
        different from the real month, advances it if auto-advance is on.
        """
        real = ReportingPeriod.from_date(self._today())
        doc = await self._store.get_document(SETTINGS, SYSTEM_DOCUMENT_ID)

        if doc is None:
            await self._persist(real)
            await self._audit(AuditEventType.SYSTEM_CLOCK_INITIALIZED, None, real)
            self._period = real
            return real

        stored = self._parse(doc)
        if stored != real and self._auto_advance:
            logger.info(
                "system_clock_advanced",
                stored=stored.label,
                real=real.label,
            )
            await self._persist(real)
            await self._audit(AuditEventType.SYSTEM_CLOCK_ADVANCED, stored, real)
            self._period = real
        else:
            self._period = stored
        return self._period

    async def get(self) -> ReportingPeriod:
        if self._period is None:
            return await self.load()
        return self._period

    async def set(
        self,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> ReportingPeriod:
        """
        Move the reporting period.

        Raises:
            InvalidDateError: Month outside 0..11 or year outside 1900..2100
        """
        period = self._validator.reporting_period(month, year)
        old = self._period
        await self._persist(period)
        self._period = period
        await self._audit(AuditEventType.SYSTEM_CLOCK_SET, old, period, correlation_id)
        return period
