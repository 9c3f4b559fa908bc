"""Integration tests for the FinanceTracker facade (in-memory storage)."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import AccountId, Category, ReportingPeriod, TransactionType
from finance_tracker.orchestrator import FinanceTracker, create_app_components
from finance_tracker.services.storage import InMemoryDocumentStore, NotFoundError
from finance_tracker.validation import InvalidDateError, ValidationError

from tests.helpers import TODAY, make_draft


async def _seed(tracker):
    """The March 2024 example plus a little history."""
    expense_id = await tracker.add_transaction(make_draft(
        amount="75.50", category=Category.FOOD, when=datetime(2024, 3, 5),
    ))
    await tracker.add_transaction(make_draft(
        amount="2500", category=Category.SALARY, type=TransactionType.INCOME,
        when=datetime(2024, 3, 4), description="Salary",
    ))
    await tracker.add_transaction(make_draft(
        amount="30.00", category=Category.FOOD, when=datetime(2023, 3, 9), account_id=AccountId.CASH,
    ))
    return expense_id


class TestLedgerFlow:
    """Tests for the end-to-end ledger behaviour."""

    @pytest.mark.asyncio
    async def test_concrete_scenario(self, tracker):
        """Test balances and spend through insert and delete."""
        expense_id = await _seed(tracker)

        assert await tracker.spent_amount(Category.FOOD) == Decimal("75.50")
        assert (await tracker.get_account(AccountId.PRIMARY)).balance == Decimal("2424.50")

        await tracker.delete_transaction(expense_id)

        assert (await tracker.get_account(AccountId.PRIMARY)).balance == Decimal("2500.00")
        assert await tracker.spent_amount(Category.FOOD, ReportingPeriod(month=2, year=2024)) == Decimal("0")

    @pytest.mark.asyncio
    async def test_invalid_transaction_is_audited(self, tracker, audit_storage):
        """Test validation failures are logged and re-raised."""
        with pytest.raises(ValidationError):
            await tracker.add_transaction({"description": "incomplete"})
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["operation"] == "add_transaction"

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self, tracker):
        """Test the default listing is date descending."""
        await _seed(tracker)
        dates = [tx.date for tx in await tracker.transactions()]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_delete_unknown(self, tracker):
        """Test NotFoundError surfaces unchanged."""
        with pytest.raises(NotFoundError):
            await tracker.delete_transaction("missing")

    @pytest.mark.asyncio
    async def test_suggestion_without_agent(self, tracker):
        """Test no agent means no suggestion, not an error."""
        assert await tracker.suggest_category("Coffee") is None


class TestBudgetsAndReports:
    """Tests for clock-driven budgets and reports."""

    @pytest.mark.asyncio
    async def test_budget_goals_use_system_month(self, tracker):
        """Test spent follows the system clock."""
        await _seed(tracker)
        await tracker.create_budget(Category.FOOD, "100")

        goals = await tracker.budget_goals()
        assert goals[0].spent == Decimal("75.50")

        await tracker.set_system_date(2, 2023)
        goals = await tracker.budget_goals()
        assert goals[0].spent == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_budget_validation_audited(self, tracker, audit_storage):
        """Test an income-category budget is refused and audited."""
        with pytest.raises(ValidationError):
            await tracker.create_budget(Category.SALARY, "100")
        assert audit_storage.events[-1].details["operation"] == "create_budget"

    @pytest.mark.asyncio
    async def test_reports_default_to_clock_month(self, tracker):
        """Test totals and breakdown cover the system month by default."""
        await _seed(tracker)
        totals = await tracker.totals()
        assert totals.income == Decimal("2500")
        assert totals.expense == Decimal("75.50")
        assert await tracker.category_breakdown() == {Category.FOOD: Decimal("75.50")}

    @pytest.mark.asyncio
    async def test_period_over_period(self, tracker):
        """Test the comparison uses the same month a year earlier."""
        await _seed(tracker)
        comparison = await tracker.period_over_period()
        assert comparison.current.expense == Decimal("75.50")
        assert comparison.previous.expense == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_explicit_range(self, tracker):
        """Test a custom inclusive range."""
        await _seed(tracker)
        window = tracker.report_range(date(2023, 1, 1), date(2024, 3, 4))
        totals = await tracker.totals(window)
        assert totals.income == Decimal("2500")
        assert totals.expense == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_monthly_series_defaults_to_system_year(self, tracker):
        """Test the series covers the clock's year."""
        await _seed(tracker)
        series = await tracker.monthly_series()
        assert len(series) == 12
        assert series[2].expense == Decimal("75.50")

    @pytest.mark.asyncio
    async def test_dashboard(self, tracker):
        """Test the dashboard summary for the clock month."""
        await _seed(tracker)
        summary = await tracker.dashboard()
        assert summary.period == ReportingPeriod.from_date(TODAY)
        assert summary.totals.net == Decimal("2424.50")
        assert len(summary.recent_transactions) == 3


class TestAccountsAndClock:
    """Tests for administrative operations through the facade."""

    @pytest.mark.asyncio
    async def test_override_and_repair(self, tracker):
        """Test an override can be detected and repaired."""
        await _seed(tracker)
        await tracker.set_account_balance(AccountId.CASH, "100")
        assert not (await tracker.verify_balance(AccountId.CASH)).consistent
        await tracker.recompute_balance(AccountId.CASH)
        assert (await tracker.get_account(AccountId.CASH)).balance == Decimal("-30.00")

    @pytest.mark.asyncio
    async def test_rename_and_reset(self, tracker):
        """Test renaming and resetting an account."""
        await tracker.rename_account(AccountId.PRIMARY, "Checking")
        await tracker.set_account_balance(AccountId.PRIMARY, "12")
        account = await tracker.reset_account(AccountId.PRIMARY)
        assert account.name == "Checking"
        assert account.balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_invalid_system_date(self, tracker, audit_storage):
        """Test an out-of-range month is refused and audited."""
        with pytest.raises(InvalidDateError):
            await tracker.set_system_date(12, 2024)
        assert audit_storage.events[-1].details["operation"] == "set_system_date"


class TestSnapshot:
    """Tests for the export snapshot."""

    @pytest.mark.asyncio
    async def test_snapshot_is_complete(self, tracker):
        """Test every collection and the clock are present."""
        await _seed(tracker)
        await tracker.create_budget(Category.FOOD, "100")

        snapshot = await tracker.snapshot()

        assert len(snapshot.transactions) == 3
        assert [a.id for a in snapshot.accounts] == [AccountId.PRIMARY, AccountId.CASH]
        assert (snapshot.system_month, snapshot.system_year) == (2, 2024)
        assert snapshot.budgets[0].spent == Decimal("75.50")

        exported = snapshot.to_export_dict()
        assert exported["budgets"][0]["spent"] == "75.50"
        assert exported["systemMonth"] == 2

    @pytest.mark.asyncio
    async def test_snapshot_is_audited(self, tracker, audit_storage):
        """Test assembling a snapshot leaves an audit event."""
        await tracker.snapshot()
        assert audit_storage.events[-1].event_type == AuditEventType.SNAPSHOT_EXPORTED


class TestFactory:
    """Tests for create_app_components."""

    @pytest.fixture(autouse=True)
    def _fresh_settings(self, monkeypatch):
        monkeypatch.setenv("LEDGER_AUTO_ADVANCE_TO_REAL_DATE", "false")
        monkeypatch.setenv("LEDGER_CASH_ACCOUNT_NAME", "Wallet")
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_memory_backend(self):
        """Test the in-memory backend honours configuration."""
        tracker = create_app_components(backend="memory", today=lambda: TODAY)
        assert isinstance(tracker, FinanceTracker)
        assert not tracker.clock.auto_advance
        assert (await tracker.get_account("cash")).name == "Wallet"

    def test_unknown_backend(self):
        """Test an unknown backend name is refused."""
        with pytest.raises(ValueError):
            create_app_components(backend="sqlite")

    def test_unconfigured_sheets_falls_back(self, monkeypatch):
        """Test missing Google Sheets settings fall back to memory."""
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        tracker = create_app_components(backend="google_sheets")
        assert isinstance(tracker.ledger._store, InMemoryDocumentStore)
