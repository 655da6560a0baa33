"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Account registry reads -- lookup by code, listing by
    predicate, and point-in-time balances.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Lookup by code is an exact match within the tenant.
    - balance_as_of = sum(debit) - sum(credit) over lines of entries dated
      on or before the cutoff, sign-flipped for credit-normal accounts.

Failure modes:
    - AccountNotFoundError for unknown codes or ids.
"""

from datetime import date
from typing import Callable, Iterable

from sqlalchemy import func, select

from ledger_kernel.domain.account_codes import AccountCode, validate_chart
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.account")


class AccountSelector(BaseSelector):
    """Read access to the tenant's chart of accounts."""

    def find_by_code(self, code: str | AccountCode) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.code == str(code),
            )
        ).scalar_one_or_none()

    def get_by_code(self, code: str | AccountCode) -> Account:
        """
        Exact-match lookup.

        Raises:
            AccountNotFoundError: if the code is not in the tenant's chart.
        """
        account = self.find_by_code(code)
        if account is None:
            raise AccountNotFoundError(str(code))
        return account

    def get_by_id(self, account_id: int) -> Account:
        account = self.session.get(Account, account_id)
        if account is None or account.tenant_id != self.tenant_id:
            raise AccountNotFoundError(account_id)
        return account

    def resolve_codes(self, codes: Iterable[str]) -> dict[str, Account]:
        """
        Resolve many codes in one query.

        Raises:
            AccountNotFoundError: naming the first code (in sorted order)
                that does not resolve.
        """
        wanted = {str(code) for code in codes}
        if not wanted:
            return {}
        rows = self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.code.in_(wanted),
            )
        ).scalars()
        found = {account.code: account for account in rows}
        missing = sorted(wanted - found.keys())
        if missing:
            raise AccountNotFoundError(missing[0])
        return found

    def list_accounts(
        self,
        predicate: Callable[[Account], bool] | None = None,
        account_types: Iterable[AccountType] | None = None,
    ) -> list[Account]:
        """
        List accounts ordered by code, optionally filtered.

        Args:
            predicate: Python-side filter applied to each Account.
            account_types: SQL-side filter on account_type.
        """
        query = select(Account).where(Account.tenant_id == self.tenant_id)
        if account_types is not None:
            query = query.where(
                Account.account_type.in_([AccountType(t).value for t in account_types])
            )
        accounts = list(self.session.execute(query.order_by(Account.code)).scalars())
        if predicate is not None:
            accounts = [account for account in accounts if predicate(account)]
        return accounts

    def codes(self) -> set[str]:
        return set(
            self.session.execute(
                select(Account.code).where(Account.tenant_id == self.tenant_id)
            ).scalars()
        )

    def validate_chart(self) -> None:
        """Fail fast if the seeded chart lacks any code the rules depend on."""
        validate_chart(self.tenant_id, self.codes())

    def balance_as_of(self, account: Account | str | AccountCode, as_of: date) -> int:
        """
        Normal-balance-signed balance of ``account`` as of ``as_of`` (inclusive).

        Args:
            account: An Account row or its code.
            as_of: Cutoff date; entries dated after it are ignored.
        """
        if not isinstance(account, Account):
            account = self.get_by_code(account)
        debits, credits = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit_cents), 0),
                func.coalesce(func.sum(JournalLine.credit_cents), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.account_id == account.id,
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.entry_date <= as_of,
            )
        ).one()
        raw = int(debits) - int(credits)
        return raw if account.is_debit_normal else -raw

    def raw_balance(self, account: Account) -> int:
        """Unbounded debit-minus-credit balance, regardless of normal side."""
        debits, credits = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit_cents), 0),
                func.coalesce(func.sum(JournalLine.credit_cents), 0),
            ).where(JournalLine.account_id == account.id)
        ).one()
        return int(debits) - int(credits)
