"""
Audit Models for Finance Tracker

Every mutation of the ledger, the accounts, the budgets or the system
clock is logged for audit purposes.
This provides:
1. Complete traceability of balance changes
2. Debugging information when a balance drifts from its history
3. Ability to reconstruct what happened between two sessions

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    TRANSACTION_INSERTED = "transaction_inserted"
    TRANSACTION_DELETED = "transaction_deleted"

    # Accounts
    BALANCE_OVERRIDDEN = "balance_overridden"
    BALANCE_RESET = "balance_reset"
    BALANCE_RECOMPUTED = "balance_recomputed"
    BALANCE_INCONSISTENT = "balance_inconsistent"
    ACCOUNT_RENAMED = "account_renamed"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"

    # System clock
    SYSTEM_CLOCK_INITIALIZED = "system_clock_initialized"
    SYSTEM_CLOCK_SET = "system_clock_set"
    SYSTEM_CLOCK_ADVANCED = "system_clock_advanced"

    # Category suggestions
    CATEGORY_SUGGESTED = "category_suggested"
    CATEGORY_SUGGESTION_FAILED = "category_suggestion_failed"

    # Input and export
    VALIDATION_FAILED = "validation_failed"
    SNAPSHOT_EXPORTED = "snapshot_exported"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_inserted(tx, correlation_id)
        event = AuditEventBuilder.balance_overridden("primary", old, new)
    """

    @staticmethod
    def transaction_inserted(
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        account_id: str,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_INSERTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recorded {transaction_type} of {amount} on {account_id}",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "account_id": account_id,
                "new_balance": str(new_balance),
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        transaction_type: str,
        amount: Decimal,
        account_id: str,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Deleted {transaction_type} of {amount} from {account_id}",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "account_id": account_id,
                "new_balance": str(new_balance),
            },
            is_user_action=True,
        )

    @staticmethod
    def balance_overridden(
        account_id: str,
        old_balance: Decimal,
        new_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_OVERRIDDEN,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance of {account_id} set manually to {new_balance}",
            details={
                "old_balance": str(old_balance),
                "new_balance": str(new_balance),
            },
            is_user_action=True,
        )

    @staticmethod
    def balance_reset(
        account_id: str,
        old_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_RESET,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance of {account_id} reset to zero",
            details={"old_balance": str(old_balance)},
            is_user_action=True,
        )

    @staticmethod
    def balance_recomputed(
        account_id: str,
        old_balance: Decimal,
        new_balance: Decimal,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_RECOMPUTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance of {account_id} recomputed from {transaction_count} transactions",
            details={
                "old_balance": str(old_balance),
                "new_balance": str(new_balance),
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def balance_inconsistent(
        account_id: str,
        stored: Decimal,
        derived: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_INCONSISTENT,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Stored balance of {account_id} does not match its transactions",
            details={
                "stored": str(stored),
                "derived": str(derived),
                "difference": str(stored - derived),
            },
        )

    @staticmethod
    def account_renamed(
        account_id: str,
        old_name: str,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_RENAMED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} renamed to {new_name}",
            details={"old_name": old_name, "new_name": new_name},
            is_user_action=True,
        )

    @staticmethod
    def budget_changed(
        event_type: AuditEventType,
        budget_id: str,
        category: str,
        limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = {
            AuditEventType.BUDGET_CREATED: "created",
            AuditEventType.BUDGET_UPDATED: "updated",
            AuditEventType.BUDGET_DELETED: "deleted",
        }[event_type]
        return AuditEvent(
            event_type=event_type,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget for {category} {verb} (limit {limit})",
            details={"category": category, "limit": str(limit)},
            is_user_action=True,
        )

    @staticmethod
    def system_clock_changed(
        event_type: AuditEventType,
        old_period: Optional[tuple[int, int]],
        new_period: tuple[int, int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        month, year = new_period
        return AuditEvent(
            event_type=event_type,
            entity_type="settings",
            entity_id="system",
            correlation_id=correlation_id,
            description=f"System date is now {month + 1:02d}/{year}",
            details={
                "old_month": old_period[0] if old_period else None,
                "old_year": old_period[1] if old_period else None,
                "new_month": month,
                "new_year": year,
            },
            is_user_action=event_type == AuditEventType.SYSTEM_CLOCK_SET,
        )

    @staticmethod
    def category_suggested(
        category: str,
        confidence: float,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_SUGGESTED,
            entity_type="suggestion",
            correlation_id=correlation_id,
            description=f"Suggested {category} with {confidence:.0%} confidence",
            details={
                "category": category,
                "confidence": confidence,
                "transaction_description": description[:100],
            },
        )

    @staticmethod
    def category_suggestion_failed(
        error_message: str,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_SUGGESTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="suggestion",
            correlation_id=correlation_id,
            description="No category suggestion available",
            error_message=error_message,
            details={"transaction_description": description[:100]},
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Rejected {operation} with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def snapshot_exported(
        transaction_count: int,
        budget_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_EXPORTED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Snapshot with {transaction_count} transactions assembled",
            details={
                "transaction_count": transaction_count,
                "budget_count": budget_count,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
