"""Tests for budget spend aggregation and budget goal CRUD."""

import pytest
from datetime import datetime
from decimal import Decimal

from finance_tracker.aggregation import BudgetAggregator, BudgetRegistry
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import BudgetGoal, Category, TransactionType
from finance_tracker.services.storage import BUDGETS, NotFoundError
from finance_tracker.validation import InvalidDateError, ValidationError

from tests.helpers import make_transaction


@pytest.fixture
def march_transactions():
    return [
        make_transaction(amount="75.50", category=Category.FOOD, when=datetime(2024, 3, 5)),
        make_transaction(amount="2500", category=Category.SALARY, type=TransactionType.INCOME,
                         when=datetime(2024, 3, 4)),
        make_transaction(amount="20.00", category=Category.FOOD, when=datetime(2024, 3, 31, 23, 59)),
        make_transaction(amount="11.00", category=Category.FOOD, when=datetime(2024, 4, 1)),
        make_transaction(amount="9.00", category=Category.FOOD, when=datetime(2023, 3, 10)),
        make_transaction(amount="40.00", category=Category.TRAVEL, when=datetime(2024, 3, 7)),
    ]


@pytest.fixture
def registry(store, audit_logger):
    return BudgetRegistry(store, audit_logger=audit_logger)


class TestBudgetAggregator:
    """Tests for spent computation."""

    def test_spent_by_calendar_month(self, march_transactions):
        """Test only expenses of the category in that month and year count."""
        aggregator = BudgetAggregator(march_transactions)
        assert aggregator.spent_amount(Category.FOOD, 2, 2024) == Decimal("95.50")
        assert aggregator.spent_amount(Category.FOOD, 3, 2024) == Decimal("11.00")
        assert aggregator.spent_amount(Category.FOOD, 2, 2023) == Decimal("9.00")

    def test_income_never_counts(self):
        """Test income in a shared category is not spending."""
        aggregator = BudgetAggregator([
            make_transaction(amount="50.00", category=Category.GIFTS, type=TransactionType.INCOME),
            make_transaction(amount="5.00", category=Category.GIFTS),
        ])
        assert aggregator.spent_amount(Category.GIFTS, 2, 2024) == Decimal("5.00")

    def test_no_matches_is_zero(self):
        """Test an empty ledger spends nothing."""
        assert BudgetAggregator([]).spent_amount("Food", 0, 2024) == Decimal("0")

    @pytest.mark.parametrize("month,year", [(12, 2024), (-1, 2024), (2, 1899), (2, 2101)])
    def test_out_of_range_period_rejected(self, march_transactions, month, year):
        """Test an impossible month or year raises instead of spending nothing."""
        with pytest.raises(InvalidDateError):
            BudgetAggregator(march_transactions).spent_amount(Category.FOOD, month, year)

    def test_unknown_category_rejected(self, march_transactions):
        """Test an unknown category raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            BudgetAggregator(march_transactions).spent_amount("Bogus", 2, 2024)
        assert exc_info.value.issues[0].field == "category"

    def test_spent_is_idempotent_and_order_independent(self, march_transactions):
        """Test repeated and reordered computation agree."""
        forward = BudgetAggregator(march_transactions)
        backward = BudgetAggregator(reversed(march_transactions))
        first = forward.spent_amount(Category.FOOD, 2, 2024)
        assert forward.spent_amount(Category.FOOD, 2, 2024) == first
        assert backward.spent_amount(Category.FOOD, 2, 2024) == first

    def test_attach_spent_returns_copy(self, march_transactions):
        """Test the original goal is left without spent."""
        goal = BudgetGoal(category=Category.FOOD, limit=Decimal("100"))
        viewed = BudgetAggregator(march_transactions).attach_spent(goal, 2, 2024)
        assert viewed.spent == Decimal("95.50")
        assert viewed.remaining == Decimal("4.50")
        assert goal.spent is None

    def test_duplicate_goals_are_independent(self, march_transactions):
        """Test two goals for one category each get the full spend."""
        goals = [
            BudgetGoal(category=Category.FOOD, limit=Decimal("50")),
            BudgetGoal(category=Category.FOOD, limit=Decimal("500")),
        ]
        viewed = BudgetAggregator(march_transactions).attach_spent_all(goals, 2, 2024)
        assert [g.spent for g in viewed] == [Decimal("95.50"), Decimal("95.50")]
        assert [g.is_over_limit for g in viewed] == [True, False]


class TestBudgetRegistry:
    """Tests for budget goal CRUD."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, registry):
        """Test a created goal is listed."""
        goal = await registry.create("Food", "300")
        goals = await registry.list_goals()
        assert [g.id for g in goals] == [goal.id]
        assert goals[0].limit == Decimal("300")

    @pytest.mark.asyncio
    async def test_spent_is_not_persisted(self, registry, store):
        """Test the stored document has no spent field."""
        goal = await registry.create(Category.FOOD, "300")
        doc = await store.get_document(BUDGETS, goal.id)
        assert "spent" not in doc

    @pytest.mark.asyncio
    async def test_create_rejects_income_category(self, registry, store):
        """Test income-only categories cannot have budgets."""
        with pytest.raises(ValidationError):
            await registry.create(Category.SALARY, "100")
        assert await store.list_documents(BUDGETS) == []

    @pytest.mark.asyncio
    async def test_update(self, registry):
        """Test partial updates keep unspecified fields."""
        goal = await registry.create(Category.FOOD, "300")
        updated = await registry.update(goal.id, limit="350")
        assert updated.category == Category.FOOD
        assert (await registry.get(goal.id)).limit == Decimal("350")

    @pytest.mark.asyncio
    async def test_update_and_delete_missing(self, registry):
        """Test unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await registry.update("nope", limit="1")
        with pytest.raises(NotFoundError):
            await registry.delete("nope")

    @pytest.mark.asyncio
    async def test_delete_is_audited(self, registry, audit_storage):
        """Test create and delete leave audit events."""
        goal = await registry.create(Category.TRAVEL, "1000")
        await registry.delete(goal.id)
        types = [e.event_type for e in audit_storage.events]
        assert types == [AuditEventType.BUDGET_CREATED, AuditEventType.BUDGET_DELETED]
        assert await registry.list_goals() == []
