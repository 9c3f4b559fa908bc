"""
Account Registry

Owns the fixed set of balance-holding accounts (see AccountId).

Accounts are created lazily with a zero balance the first time they
are referenced and are never deleted, only reset. Outside of ledger
commits, balances change only through the administrative operations
here (override, reset), each of which is audited.
"""

import asyncio
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from finance_tracker.audit import AuditLogger
from finance_tracker.ledger.balance import BalanceMaintainer
from finance_tracker.models.ledger import ZERO, Account, AccountId, Transaction
from finance_tracker.services.storage import ACCOUNTS, DocumentStoreInterface
from finance_tracker.validation import LedgerValidator, ValidationError, issues_from_pydantic


DEFAULT_ACCOUNT_NAMES: dict[str, str] = {
    AccountId.PRIMARY.value: "Main Account",
    AccountId.CASH.value: "Cash",
}


class AccountRegistry:
    """
    Running balances per account.

    write_lock serializes every balance mutation; the ledger store takes
    the same lock around its commits.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        account_names: Optional[Mapping[str, str]] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._store = store
        self._names = dict(account_names or DEFAULT_ACCOUNT_NAMES)
        self._audit_logger = audit_logger
        self._validator = validator or LedgerValidator()
        self.write_lock = asyncio.Lock()

    def default_name(self, account_id: AccountId) -> str:
        return self._names.get(account_id.value, account_id.value.title())

    async def load(self, account_id: Union[AccountId, str]) -> Account:
        """Stored account, or a fresh zero-balance one (not persisted)."""
        account_id = self._validator.account_id(account_id)
        doc = await self._store.get_document(ACCOUNTS, account_id.value)
        if doc is None:
            return Account(id=account_id, name=self.default_name(account_id))
        return Account.from_document(doc)

    async def get(self, account_id: Union[AccountId, str]) -> Account:
        """The account, persisted with a zero balance if first referenced."""
        account_id = self._validator.account_id(account_id)
        doc = await self._store.get_document(ACCOUNTS, account_id.value)
        if doc is not None:
            return Account.from_document(doc)
        async with self.write_lock:
            # Another writer may have created it while we waited
            doc = await self._store.get_document(ACCOUNTS, account_id.value)
            if doc is not None:
                return Account.from_document(doc)
            account = Account(id=account_id, name=self.default_name(account_id))
            await self._store.set_document(ACCOUNTS, account_id.value, account.to_document())
            return account

    async def list_accounts(self) -> list[Account]:
        """Every account in AccountId order, unreferenced ones at zero."""
        stored = {
            doc["id"]: Account.from_document(doc)
            for doc in await self._store.list_documents(ACCOUNTS)
        }
        return [
            stored.get(account_id.value)
            or Account(id=account_id, name=self.default_name(account_id))
            for account_id in AccountId
        ]

    async def set_balance(
        self,
        account_id: Union[AccountId, str],
        value: Union[Decimal, float, int, str],
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """
        Manual override of the running balance.

        Transactions are left untouched, so the stored balance may stop
        matching the ledger; that is the point of an override.
        """
        account_id = self._validator.account_id(account_id)
        new_balance = self._validator.balance(value)

        async with self.write_lock:
            current = await self.load(account_id)
            updated = current.model_copy(update={"balance": new_balance})
            await self._store.set_document(ACCOUNTS, account_id.value, updated.to_document())

        if self._audit_logger:
            await self._audit_logger.log_balance_overridden(
                account_id=account_id.value,
                old_balance=current.balance,
                new_balance=new_balance,
                correlation_id=correlation_id,
            )
        return updated

    async def reset(
        self,
        account_id: Union[AccountId, str],
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """Set the balance back to zero."""
        account_id = self._validator.account_id(account_id)

        async with self.write_lock:
            current = await self.load(account_id)
            updated = current.model_copy(update={"balance": ZERO})
            await self._store.set_document(ACCOUNTS, account_id.value, updated.to_document())

        if self._audit_logger:
            await self._audit_logger.log_balance_reset(
                account_id=account_id.value,
                old_balance=current.balance,
                correlation_id=correlation_id,
            )
        return updated

    async def rename(
        self,
        account_id: Union[AccountId, str],
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> Account:
        """Change the display name; the balance is untouched."""
        account_id = self._validator.account_id(account_id)

        async with self.write_lock:
            current = await self.load(account_id)
            try:
                updated = Account.model_validate({**current.model_dump(), "name": name})
            except PydanticValidationError as e:
                issues = issues_from_pydantic(e)
                raise ValidationError(f"Invalid account name: {name!r}", issues) from e
            await self._store.set_document(ACCOUNTS, account_id.value, updated.to_document())

        if self._audit_logger:
            await self._audit_logger.log_account_renamed(
                account_id=account_id.value,
                old_name=current.name,
                new_name=updated.name,
                correlation_id=correlation_id,
            )
        return updated

    @staticmethod
    def derived_balance(
        account_id: Union[AccountId, str],
        transactions: Iterable[Transaction],
    ) -> Decimal:
        """Balance re-derived from transaction history alone."""
        return BalanceMaintainer.derived_balance(AccountId(account_id), transactions)
