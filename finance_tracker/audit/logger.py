"""
Audit Logger

DESIGN DECISION: Every mutation of ledger state is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when a balance drifts
3. History of manual overrides and system date changes

The audit logger:
- Is async so it can share the storage backend's event loop
- Gracefully handles failures (an audit write never breaks a ledger write)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finance_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_inserted(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        account_id: str,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_inserted(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            account_id=account_id,
            new_balance=new_balance,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        account_id: str,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            account_id=account_id,
            new_balance=new_balance,
            correlation_id=correlation_id,
        ))

    async def log_balance_overridden(
        self,
        account_id: str,
        old_balance: Decimal,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.balance_overridden(
            account_id=account_id,
            old_balance=old_balance,
            new_balance=new_balance,
            correlation_id=correlation_id,
        ))

    async def log_balance_reset(
        self,
        account_id: str,
        old_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.balance_reset(
            account_id=account_id,
            old_balance=old_balance,
            correlation_id=correlation_id,
        ))

    async def log_balance_recomputed(
        self,
        account_id: str,
        old_balance: Decimal,
        new_balance: Decimal,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.balance_recomputed(
            account_id=account_id,
            old_balance=old_balance,
            new_balance=new_balance,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_balance_inconsistent(
        self,
        account_id: str,
        stored: Decimal,
        derived: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """The stored running total disagrees with the ledger."""
        await self.log(AuditEventBuilder.balance_inconsistent(
            account_id=account_id,
            stored=stored,
            derived=derived,
            correlation_id=correlation_id,
        ))

    async def log_account_renamed(
        self,
        account_id: str,
        old_name: str,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.account_renamed(
            account_id=account_id,
            old_name=old_name,
            new_name=new_name,
            correlation_id=correlation_id,
        ))

    async def log_budget_changed(
        self,
        event_type: AuditEventType,
        budget_id: str,
        category: str,
        limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_changed(
            event_type=event_type,
            budget_id=budget_id,
            category=category,
            limit=limit,
            correlation_id=correlation_id,
        ))

    async def log_system_clock_changed(
        self,
        event_type: AuditEventType,
        old_period: Optional[tuple[int, int]],
        new_period: tuple[int, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_clock_changed(
            event_type=event_type,
            old_period=old_period,
            new_period=new_period,
            correlation_id=correlation_id,
        ))

    async def log_category_suggested(
        self,
        category: str,
        confidence: float,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.category_suggested(
            category=category,
            confidence=confidence,
            description=description,
            correlation_id=correlation_id,
        ))

    async def log_category_suggestion_failed(
        self,
        error_message: str,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.category_suggestion_failed(
            error_message=error_message,
            description=description,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_exported(
        self,
        transaction_count: int,
        budget_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_exported(
            transaction_count=transaction_count,
            budget_count=budget_count,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
