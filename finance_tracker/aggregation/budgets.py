"""
Budget Aggregation

A budget goal's `spent` value is a view: the sum of expense transactions
in the goal's category for one calendar month. It is recomputed from the
ledger on every read and never written to storage.

Months are zero-based (0 = January) to match the system clock.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import (
    ZERO,
    BudgetGoal,
    Category,
    Transaction,
)
from finance_tracker.services.storage import BUDGETS, DocumentStoreInterface, NotFoundError
from finance_tracker.validation import LedgerValidator


class BudgetAggregator:
    """
    Pure spend computation over a fixed list of transactions.

    Build a new aggregator from a fresh ledger read whenever the ledger
    may have changed; nothing is cached.
    """

    def __init__(self, transactions: Iterable[Transaction], validator: Optional[LedgerValidator] = None):
        self._transactions = tuple(transactions)
        self._validator = validator or LedgerValidator()

    def spent_amount(self, category: Union[Category, str], month: int, year: int) -> Decimal:
        """
        Sum of expense amounts in the category whose date falls in month/year.

        Raises:
            ValidationError: Unknown category
            InvalidDateError: Month outside 0-11 or year outside 1900-2100
        """
        category = self._validator.category(category)
        period = self._validator.reporting_period(month, year)
        return sum(
            (
                tx.amount
                for tx in self._transactions
                if tx.is_expense and tx.category is category and period.contains(tx.date)
            ),
            ZERO,
        )

    def attach_spent(self, goal: BudgetGoal, month: int, year: int) -> BudgetGoal:
        """Copy of the goal with spent set for the given month."""
        return goal.model_copy(update={"spent": self.spent_amount(goal.category, month, year)})

    def attach_spent_all(
        self,
        goals: Iterable[BudgetGoal],
        month: int,
        year: int,
    ) -> list[BudgetGoal]:
        # Duplicate goals for one category are each given the same spend
        return [self.attach_spent(goal, month, year) for goal in goals]


class BudgetRegistry:
    """CRUD for budget goals. `spent` is never persisted."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()

    async def _audit(
        self,
        event_type: AuditEventType,
        goal: BudgetGoal,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_budget_changed(
                event_type=event_type,
                budget_id=goal.id,
                category=goal.category.value,
                limit=goal.limit,
                correlation_id=correlation_id,
            )

    async def create(
        self,
        category: Union[Category, str],
        limit: Union[Decimal, float, int, str],
        correlation_id: Optional[UUID] = None,
    ) -> BudgetGoal:
        """
        Create a goal for an expense category.

        Raises:
            ValidationError: Not an expense category, or limit not positive
        """
        goal = self._validator.budget_goal(category, limit)
        await self._store.insert_document(BUDGETS, goal.id, goal.to_document())
        await self._audit(AuditEventType.BUDGET_CREATED, goal, correlation_id)
        return goal

    async def get(self, budget_id: str) -> BudgetGoal:
        doc = await self._store.get_document(BUDGETS, budget_id)
        if doc is None:
            raise NotFoundError(f"Budget goal not found: {budget_id}")
        return BudgetGoal.from_document(doc)

    async def list_goals(self) -> list[BudgetGoal]:
        return [BudgetGoal.from_document(doc) for doc in await self._store.list_documents(BUDGETS)]

    async def update(
        self,
        budget_id: str,
        category: Optional[Union[Category, str]] = None,
        limit: Optional[Union[Decimal, float, int, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetGoal:
        """
        Change the category and/or limit of a goal.

        Raises:
            NotFoundError: No goal with that id
            ValidationError: The resulting goal is invalid
        """
        current = await self.get(budget_id)
        goal = self._validator.budget_goal(
            category if category is not None else current.category,
            limit if limit is not None else current.limit,
            budget_id=budget_id,
        )
        await self._store.update_document(BUDGETS, budget_id, goal.to_document())
        await self._audit(AuditEventType.BUDGET_UPDATED, goal, correlation_id)
        return goal

    async def delete(self, budget_id: str, correlation_id: Optional[UUID] = None) -> BudgetGoal:
        """
        Raises:
            NotFoundError: No goal with that id
        """
        goal = await self.get(budget_id)
        await self._store.delete_document(BUDGETS, budget_id)
        await self._audit(AuditEventType.BUDGET_DELETED, goal, correlation_id)
        return goal
