"""
Main Orchestrator for Finance Tracker

This module ties together all the components behind one facade that the
UI (or any other caller) talks to:
1. Ledger: add/delete/list transactions, balances kept in step
2. Accounts: overrides, resets, renames, consistency checks
3. Budgets: goals with spent attached for the system month
4. Reports: totals, breakdowns, monthly series, year-over-year
5. System clock: the default reporting period
6. Export: one consistent snapshot of everything

DESIGN DECISION: The system clock is read here and passed explicitly to
the aggregators. The aggregators are pure and know nothing about it.

Every mutation is audited; invalid input is audited as validation_failed
and re-raised unchanged.
"""

from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.agents import CategorySuggestion, CategorySuggestionAgent
from finance_tracker.aggregation import (
    BudgetAggregator,
    BudgetRegistry,
    ReportAggregator,
    month_range,
)
from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.clock import SystemClock
from finance_tracker.config import get_settings
from finance_tracker.config.settings import LedgerSettings
from finance_tracker.ledger import AccountRegistry, LedgerStore
from finance_tracker.models.ledger import (
    Account,
    AccountId,
    BalanceCheck,
    BudgetGoal,
    Category,
    DateRange,
    LedgerSnapshot,
    MonthlyEntry,
    MonthSummary,
    PeriodComparison,
    ReportingPeriod,
    Totals,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    DocumentStoreInterface,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)
from finance_tracker.validation import LedgerValidator, ValidationError


logger = structlog.get_logger(__name__)


class FinanceTracker:
    """
    Facade over the ledger, accounts, budgets, reports and clock.

    All writes share one lock (the account registry's), which is also
    held while a snapshot is assembled.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        suggestion_agent: Optional[CategorySuggestionAgent] = None,
        today: Callable[[], date] = date.today,
    ):
        self._settings = settings or LedgerSettings()
        self._audit_logger = audit_logger
        self._validator = LedgerValidator()
        self._suggestion_agent = suggestion_agent

        self.accounts = AccountRegistry(
            store,
            account_names=self._settings.account_names,
            audit_logger=audit_logger,
            validator=self._validator,
        )
        self.ledger = LedgerStore(
            store,
            self.accounts,
            audit_logger=audit_logger,
            validator=self._validator,
        )
        self.budgets = BudgetRegistry(store, audit_logger=audit_logger, validator=self._validator)
        self.clock = SystemClock(
            store,
            auto_advance=self._settings.auto_advance_to_real_date,
            audit_logger=audit_logger,
            validator=self._validator,
            today=today,
        )

    @property
    def _lock(self):
        return self.accounts.write_lock

    async def _validation_failed(
        self,
        operation: str,
        error: ValidationError,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                operation=operation,
                issues=error.issues_as_dicts(),
                correlation_id=correlation_id,
            )

    # =========================================================================
    # LEDGER
    # =========================================================================

    async def add_transaction(
        self,
        draft: Union[TransactionDraft, Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """Insert a transaction; returns its id."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            return await self.ledger.insert(draft, correlation_id=correlation_id)
        except ValidationError as e:
            await self._validation_failed("add_transaction", e, correlation_id)
            raise

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        return await self.ledger.delete(transaction_id, correlation_id=correlation_id)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        return await self.ledger.get(transaction_id)

    async def transactions(self, newest_first: bool = True) -> list[Transaction]:
        """All transactions, newest first by default (display order)."""
        return await self.ledger.list_all(newest_first=newest_first)

    async def find_transactions(self, predicate: Callable[[Transaction], bool]) -> list[Transaction]:
        return await self.ledger.query(predicate)

    async def suggest_category(
        self,
        description: str,
        vendor: Optional[str] = None,
        transaction_type: Optional[Union[TransactionType, str]] = None,
    ) -> Optional[CategorySuggestion]:
        """Advisory only; None when no agent is configured or it fails."""
        if self._suggestion_agent is None:
            return None
        return await self._suggestion_agent.suggest_category(
            description,
            vendor=vendor,
            transaction_type=transaction_type,
        )

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def list_accounts(self) -> list[Account]:
        return await self.accounts.list_accounts()

    async def get_account(self, account_id: Union[AccountId, str]) -> Account:
        return await self.accounts.get(account_id)

    async def set_account_balance(
        self,
        account_id: Union[AccountId, str],
        value: Union[Decimal, float, int, str],
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        correlation_id = correlation_id or create_correlation_id()
        try:
            return await self.accounts.set_balance(account_id, value, correlation_id=correlation_id)
        except ValidationError as e:
            await self._validation_failed("set_account_balance", e, correlation_id)
            raise

    async def reset_account(
        self,
        account_id: Union[AccountId, str],
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        return await self.accounts.reset(account_id, correlation_id=correlation_id)

    async def rename_account(
        self,
        account_id: Union[AccountId, str],
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        correlation_id = correlation_id or create_correlation_id()
        try:
            return await self.accounts.rename(account_id, name, correlation_id=correlation_id)
        except ValidationError as e:
            await self._validation_failed("rename_account", e, correlation_id)
            raise

    async def verify_balance(self, account_id: Union[AccountId, str]) -> BalanceCheck:
        return await self.ledger.verify_balance(account_id)

    async def recompute_balance(self, account_id: Union[AccountId, str]) -> BalanceCheck:
        return await self.ledger.recompute_balance(account_id)

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def create_budget(
        self,
        category: Union[Category, str],
        limit: Union[Decimal, float, int, str],
        correlation_id: Optional[UUID] = None,
    ) -> BudgetGoal:
        correlation_id = correlation_id or create_correlation_id()
        try:
            async with self._lock:
                return await self.budgets.create(category, limit, correlation_id=correlation_id)
        except ValidationError as e:
            await self._validation_failed("create_budget", e, correlation_id)
            raise

    async def update_budget(
        self,
        budget_id: str,
        category: Optional[Union[Category, str]] = None,
        limit: Optional[Union[Decimal, float, int, str]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetGoal:
        correlation_id = correlation_id or create_correlation_id()
        try:
            async with self._lock:
                return await self.budgets.update(
                    budget_id,
                    category=category,
                    limit=limit,
                    correlation_id=correlation_id,
                )
        except ValidationError as e:
            await self._validation_failed("update_budget", e, correlation_id)
            raise

    async def delete_budget(self, budget_id: str, correlation_id: Optional[UUID] = None) -> BudgetGoal:
        async with self._lock:
            return await self.budgets.delete(budget_id, correlation_id=correlation_id)

    async def budget_goals(self, period: Optional[ReportingPeriod] = None) -> list[BudgetGoal]:
        """Goals with spent recomputed for the period (system month by default)."""
        period = period or await self.clock.get()
        aggregator = BudgetAggregator(await self.ledger.list_all(), self._validator)
        return aggregator.attach_spent_all(await self.budgets.list_goals(), period.month, period.year)

    async def spent_amount(
        self,
        category: Union[Category, str],
        period: Optional[ReportingPeriod] = None,
    ) -> Decimal:
        period = period or await self.clock.get()
        aggregator = BudgetAggregator(await self.ledger.list_all(), self._validator)
        return aggregator.spent_amount(category, period.month, period.year)

    # =========================================================================
    # REPORTS
    # =========================================================================

    def report_range(self, start: date, end: date) -> DateRange:
        """Inclusive window from start to end-of-day of end."""
        return self._validator.date_range(start, end)

    async def _reports(self) -> ReportAggregator:
        return ReportAggregator(await self.ledger.list_all(), self._validator)

    async def _default_range(self, date_range: Optional[DateRange]) -> DateRange:
        if date_range is not None:
            return date_range
        return month_range(await self.clock.get())

    async def totals(self, date_range: Optional[DateRange] = None) -> Totals:
        date_range = await self._default_range(date_range)
        return (await self._reports()).totals(date_range)

    async def category_breakdown(self, date_range: Optional[DateRange] = None) -> dict[Category, Decimal]:
        date_range = await self._default_range(date_range)
        return (await self._reports()).category_breakdown(date_range)

    async def monthly_series(self, year: Optional[int] = None) -> list[MonthlyEntry]:
        """Month-by-month totals for a year (the system year by default)."""
        if year is None:
            year = (await self.clock.get()).year
        return (await self._reports()).monthly_series(year)

    async def period_over_period(self, date_range: Optional[DateRange] = None) -> PeriodComparison:
        date_range = await self._default_range(date_range)
        return (await self._reports()).period_over_period(date_range)

    async def dashboard(self) -> MonthSummary:
        period = await self.clock.get()
        reports = await self._reports()
        return reports.month_summary(period, recent_limit=self._settings.recent_transactions_limit)

    # =========================================================================
    # SYSTEM CLOCK
    # =========================================================================

    async def get_system_date(self) -> ReportingPeriod:
        return await self.clock.get()

    async def set_system_date(
        self,
        month: int,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> ReportingPeriod:
        correlation_id = correlation_id or create_correlation_id()
        try:
            async with self._lock:
                return await self.clock.set(month, year, correlation_id=correlation_id)
        except ValidationError as e:
            await self._validation_failed("set_system_date", e, correlation_id)
            raise

    # =========================================================================
    # EXPORT
    # =========================================================================

    async def snapshot(self, correlation_id: Optional[UUID] = None) -> LedgerSnapshot:
        """
        Everything an exporter needs, consistent as of one moment.

        Assembled under the write lock, so no mutation can interleave.
        Budgets carry spent for the system month.
        """
        async with self._lock:
            period = await self.clock.get()
            transactions = await self.ledger.list_all()
            goals = await self.budgets.list_goals()
            accounts = await self.accounts.list_accounts()

        budgets = BudgetAggregator(transactions, self._validator).attach_spent_all(goals, period.month, period.year)
        snapshot = LedgerSnapshot(
            transactions=transactions,
            budgets=budgets,
            accounts=accounts,
            system_month=period.month,
            system_year=period.year,
        )

        if self._audit_logger:
            await self._audit_logger.log_snapshot_exported(
                transaction_count=len(transactions),
                budget_count=len(budgets),
                correlation_id=correlation_id,
            )
        return snapshot


def create_app_components(
    backend: Optional[str] = None,
    today: Callable[[], date] = date.today,
) -> FinanceTracker:
    """
    Factory function to create the application facade.

    Args:
        backend: "memory" or "google_sheets". Defaults to the
                LEDGER_STORAGE_BACKEND setting.

    Returns:
        A FinanceTracker wired to the chosen backend

    If Google Sheets is selected but not configured, the tracker falls
    back to in-memory storage and logs a warning.
    """
    settings = get_settings()
    ledger_settings = settings.ledger
    backend = backend or ledger_settings.storage_backend

    store: DocumentStoreInterface
    audit_storage: AuditStorageInterface

    if backend == "google_sheets":
        try:
            from finance_tracker.services.storage.google_sheets import (
                GoogleSheetsAuditStorage,
                GoogleSheetsClient,
                GoogleSheetsDocumentStore,
            )

            sheets_client = GoogleSheetsClient(settings.google_sheets)
            store = GoogleSheetsDocumentStore(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", backend=backend, error=str(e))
            store = InMemoryDocumentStore()
            audit_storage = InMemoryAuditStorage()
    elif backend == "memory":
        store = InMemoryDocumentStore()
        audit_storage = InMemoryAuditStorage()
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    audit_logger = AuditLogger(audit_storage)

    return FinanceTracker(
        store,
        settings=ledger_settings,
        audit_logger=audit_logger,
        suggestion_agent=CategorySuggestionAgent(audit_logger=audit_logger),
        today=today,
    )
