"""
Ledger Store

Owns the transaction lifecycle. Transactions are immutable: the only
mutations are insert and delete, and each one is committed together
with the balance change it causes.

DESIGN DECISION: The transaction document and the account document
are written in ONE storage commit. A failure leaves both untouched,
so the running balance can never drift from the ledger because of a
half-applied write. recompute_balance() remains available for repairing
data written by other tools.
"""

from collections.abc import Callable, Mapping
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.ledger.accounts import AccountRegistry
from finance_tracker.ledger.balance import BalanceMaintainer
from finance_tracker.models.ledger import (
    AccountId,
    BalanceCheck,
    Transaction,
    TransactionDraft,
)
from finance_tracker.services.storage import (
    ACCOUNTS,
    TRANSACTIONS,
    DocumentStoreInterface,
    DocumentWrite,
    NotFoundError,
    StorageError,
)
from finance_tracker.validation import LedgerValidator


logger = structlog.get_logger(__name__)


class LedgerStore:
    """
    The set of transactions, plus the balance bookkeeping around it.

    Writes are serialized through the account registry's write lock
    (single logical writer). Reads never take the lock.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        accounts: AccountRegistry,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        balance_maintainer: Optional[BalanceMaintainer] = None,
    ):
        self._store = store
        self._accounts = accounts
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()
        self._balances = balance_maintainer or BalanceMaintainer()

    @property
    def write_lock(self):
        return self._accounts.write_lock

    async def _commit(
        self,
        operation: str,
        writes: list[DocumentWrite],
        correlation_id: Optional[UUID],
    ) -> None:
        """Commit ledger writes; storage failures are audited, then re-raised."""
        try:
            await self._store.commit(writes)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation, "writes": len(writes)},
                    correlation_id=correlation_id,
                )
            raise

    async def insert(
        self,
        draft: Union[TransactionDraft, Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Store a new transaction and adjust its account's balance.

        Returns:
            The new transaction id

        Raises:
            ValidationError: Invalid input (nothing is written)
            StorageError: The commit failed (nothing is written)
        """
        correlation_id = correlation_id or create_correlation_id()
        transaction = Transaction.from_draft(self._validator.transaction_draft(draft))

        async with self.write_lock:
            account = await self._accounts.load(transaction.account_id)
            updated = self._balances.adjustment_for(account, transaction)
            await self._commit("insert", [
                DocumentWrite.insert(TRANSACTIONS, transaction.id, transaction.to_document()),
                DocumentWrite.set(ACCOUNTS, updated.id.value, updated.to_document()),
            ], correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_transaction_inserted(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=transaction.amount,
                account_id=transaction.account_id.value,
                new_balance=updated.balance,
                correlation_id=correlation_id,
            )
        return transaction.id

    async def delete(self, transaction_id: str, correlation_id: Optional[UUID] = None) -> Transaction:
        """
        Remove a transaction and apply the inverse balance adjustment.

        Returns:
            The removed transaction

        Raises:
            NotFoundError: No transaction with that id
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self.write_lock:
            transaction = await self.get(transaction_id)
            account = await self._accounts.load(transaction.account_id)
            updated = self._balances.adjustment_for(account, transaction, reverse=True)
            await self._commit("delete", [
                DocumentWrite.delete(TRANSACTIONS, transaction.id),
                DocumentWrite.set(ACCOUNTS, updated.id.value, updated.to_document()),
            ], correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=transaction.amount,
                account_id=transaction.account_id.value,
                new_balance=updated.balance,
                correlation_id=correlation_id,
            )
        return transaction

    async def get(self, transaction_id: str) -> Transaction:
        doc = await self._store.get_document(TRANSACTIONS, transaction_id)
        if doc is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")
        return Transaction.from_document(doc)

    async def list_all(self, newest_first: bool = False) -> list[Transaction]:
        """
        Every transaction, in insertion order.

        With newest_first the list is sorted by date descending for
        display; transactions on the same date keep insertion order.
        """
        transactions = [
            Transaction.from_document(doc)
            for doc in await self._store.list_documents(TRANSACTIONS)
        ]
        if newest_first:
            transactions.sort(key=lambda tx: tx.date, reverse=True)
        return transactions

    async def query(self, predicate: Callable[[Transaction], bool]) -> list[Transaction]:
        """All transactions matching the predicate, in insertion order."""
        return [tx for tx in await self.list_all() if predicate(tx)]

    async def verify_balance(
        self,
        account_id: Union[AccountId, str],
        correlation_id: Optional[UUID] = None,
    ) -> BalanceCheck:
        """
        Compare the stored running balance with the ledger-derived one.

        A mismatch is logged as balance_inconsistent; nothing is changed.
        Manual overrides show up here as mismatches too.
        """
        account_id = self._validator.account_id(account_id)
        account = await self._accounts.load(account_id)
        derived = self._balances.derived_balance(account_id, await self.list_all())
        check = BalanceCheck(account_id=account_id, stored=account.balance, derived=derived)

        if not check.consistent:
            logger.warning(
                "balance_inconsistent",
                account_id=account_id.value,
                stored=str(check.stored),
                derived=str(check.derived),
            )
            if self._audit_logger:
                await self._audit_logger.log_balance_inconsistent(
                    account_id=account_id.value,
                    stored=check.stored,
                    derived=check.derived,
                    correlation_id=correlation_id,
                )
        return check

    async def recompute_balance(
        self,
        account_id: Union[AccountId, str],
        correlation_id: Optional[UUID] = None,
    ) -> BalanceCheck:
        """
        Repair: overwrite the stored balance with the derived one.

        Returns the check as it was before the repair.
        """
        account_id = self._validator.account_id(account_id)

        async with self.write_lock:
            transactions = await self.list_all()
            account = await self._accounts.load(account_id)
            derived = self._balances.derived_balance(account_id, transactions)
            repaired = account.model_copy(update={"balance": derived})
            await self._store.set_document(ACCOUNTS, account_id.value, repaired.to_document())

        if self._audit_logger:
            await self._audit_logger.log_balance_recomputed(
                account_id=account_id.value,
                old_balance=account.balance,
                new_balance=derived,
                transaction_count=sum(1 for tx in transactions if tx.account_id == account_id),
                correlation_id=correlation_id,
            )
        return BalanceCheck(account_id=account_id, stored=account.balance, derived=derived)
