"""Builders for test data."""

from datetime import date, datetime
from decimal import Decimal

from finance_tracker.models.ledger import (
    AccountId,
    Category,
    Transaction,
    TransactionDraft,
    TransactionType,
)


# Pinned wall clock: system month is March 2024 (month index 2)
TODAY = date(2024, 3, 15)


def make_draft(
    amount="10.00",
    category=Category.FOOD,
    type=TransactionType.EXPENSE,
    when=datetime(2024, 3, 5),
    account_id=AccountId.PRIMARY,
    description="Groceries",
    vendor=None,
) -> TransactionDraft:
    return TransactionDraft(
        date=when,
        description=description,
        amount=Decimal(amount),
        category=category,
        type=type,
        account_id=account_id,
        vendor=vendor,
    )


def make_transaction(**kwargs) -> Transaction:
    return Transaction.from_draft(make_draft(**kwargs))
