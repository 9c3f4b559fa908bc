"""
Balance Maintainer

Computes the account write that accompanies every ledger insert/delete.
It never touches storage itself: the ledger puts the returned account
into the same commit as the transaction write, so the pair is applied
together or not at all.
"""

from collections.abc import Iterable
from decimal import Decimal

from finance_tracker.models.ledger import ZERO, Account, AccountId, Transaction


class BalanceMaintainer:
    """Signed balance arithmetic for ledger mutations."""

    @staticmethod
    def delta(transaction: Transaction, reverse: bool = False) -> Decimal:
        """+amount for income, -amount for expense; inverted on delete."""
        signed = transaction.signed_amount
        return -signed if reverse else signed

    def adjustment_for(
        self,
        account: Account,
        transaction: Transaction,
        reverse: bool = False,
    ) -> Account:
        """
        Account state after applying (or undoing) a transaction.

        Raises:
            ValueError: If the transaction is routed to another account
        """
        if transaction.account_id != account.id:
            raise ValueError(
                f"Transaction {transaction.id} belongs to '{transaction.account_id.value}', "
                f"not '{account.id.value}'"
            )
        return account.model_copy(
            update={"balance": account.balance + self.delta(transaction, reverse)}
        )

    @staticmethod
    def derived_balance(account_id: AccountId, transactions: Iterable[Transaction]) -> Decimal:
        """Sum of signed amounts routed to the account."""
        return sum(
            (tx.signed_amount for tx in transactions if tx.account_id == account_id),
            ZERO,
        )
