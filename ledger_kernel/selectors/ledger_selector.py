"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Aggregated ledger reads -- per-account totals for a period,
    per-order balances parsed from references, unbalanced-entry detection
    and cash movement summaries.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and utils/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only.
    - Every aggregate is computed in SQL grouped by account, entry or
      reference, so cost is O(accounts) or O(groups), never O(lines) in
      Python.

Failure modes:
    - Empty results when nothing matches; never raises on absence of data.

Audit relevance:
    These queries are the only inputs to the financial statements and to
    the verification engine's ledger-side comparisons.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import and_, case, func, select

from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.models.account import Account, AccountType, NormalBalance
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.utils.references import ORDER_REFERENCE_LIKE, parse_order_id


@dataclass(frozen=True)
class AccountTotals:
    """Debit and credit totals of one account over some window."""

    account_id: int
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    is_cash: bool
    is_cogs: bool
    debit_cents: int
    credit_cents: int

    @property
    def raw(self) -> int:
        return self.debit_cents - self.credit_cents

    @property
    def balance(self) -> int:
        """Balance signed by the account's normal side."""
        if self.normal_balance is NormalBalance.DEBIT:
            return self.raw
        return -self.raw


@dataclass(frozen=True)
class UnbalancedEntry:
    entry_id: int
    reference: str | None
    entry_type: str
    entry_date: date
    debit_cents: int
    credit_cents: int

    @property
    def difference(self) -> int:
        return self.debit_cents - self.credit_cents


@dataclass(frozen=True)
class CashMovement:
    """Cash-account debits and credits summed for one entry type."""

    entry_type: str
    inflow_cents: int
    outflow_cents: int


class LedgerSelector(BaseSelector):
    """Aggregation queries over journal lines."""

    def account_totals(
        self,
        start: date | None = None,
        end: date | None = None,
        account_types: Iterable[AccountType] | None = None,
        exclude_entry_types: Iterable[str] = (),
    ) -> list[AccountTotals]:
        """
        Per-account debit/credit totals for entries dated within [start, end].

        Every account of the requested types is returned, including those
        with no activity (zero totals), ordered by code.
        """
        conditions = [JournalEntry.tenant_id == self.tenant_id]
        if start is not None:
            conditions.append(JournalEntry.entry_date >= start)
        if end is not None:
            conditions.append(JournalEntry.entry_date <= end)
        excluded = [str(t) for t in exclude_entry_types]
        if excluded:
            conditions.append(JournalEntry.entry_type.not_in(excluded))

        sums = (
            select(
                JournalLine.account_id.label("account_id"),
                func.sum(JournalLine.debit_cents).label("debits"),
                func.sum(JournalLine.credit_cents).label("credits"),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(*conditions)
            .group_by(JournalLine.account_id)
            .subquery()
        )

        query = (
            select(
                Account,
                func.coalesce(sums.c.debits, 0),
                func.coalesce(sums.c.credits, 0),
            )
            .outerjoin(sums, sums.c.account_id == Account.id)
            .where(Account.tenant_id == self.tenant_id)
        )
        if account_types is not None:
            query = query.where(
                Account.account_type.in_([AccountType(t).value for t in account_types])
            )

        return [
            AccountTotals(
                account_id=account.id,
                code=account.code,
                name=account.name,
                account_type=AccountType(account.account_type),
                normal_balance=NormalBalance(account.normal_balance),
                is_cash=account.is_cash,
                is_cogs=account.is_cogs,
                debit_cents=int(debits),
                credit_cents=int(credits),
            )
            for account, debits, credits in self.session.execute(
                query.order_by(Account.code)
            ).all()
        ]

    def unbalanced_entries(
        self,
        exclude_entry_types: Iterable[str] = (EntryType.YEAR_END_CLOSE,),
    ) -> list[UnbalancedEntry]:
        """Entries whose lines do not sum to equal, positive totals."""
        debits = func.coalesce(func.sum(JournalLine.debit_cents), 0)
        credits = func.coalesce(func.sum(JournalLine.credit_cents), 0)
        query = (
            select(
                JournalEntry.id,
                JournalEntry.reference,
                JournalEntry.entry_type,
                JournalEntry.entry_date,
                debits,
                credits,
            )
            .outerjoin(JournalLine, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.tenant_id == self.tenant_id)
            .group_by(
                JournalEntry.id,
                JournalEntry.reference,
                JournalEntry.entry_type,
                JournalEntry.entry_date,
            )
            .having((debits != credits) | (debits == 0))
            .order_by(JournalEntry.id)
        )
        excluded = [str(t) for t in exclude_entry_types]
        if excluded:
            query = query.where(JournalEntry.entry_type.not_in(excluded))
        return [
            UnbalancedEntry(
                entry_id=row[0],
                reference=row[1],
                entry_type=row[2],
                entry_date=row[3],
                debit_cents=int(row[4]),
                credit_cents=int(row[5]),
            )
            for row in self.session.execute(query).all()
        ]

    def count_entries(self, exclude_entry_types: Iterable[str] = ()) -> int:
        query = select(func.count(JournalEntry.id)).where(
            JournalEntry.tenant_id == self.tenant_id
        )
        excluded = [str(t) for t in exclude_entry_types]
        if excluded:
            query = query.where(JournalEntry.entry_type.not_in(excluded))
        return self.session.execute(query).scalar_one()

    def lines_for(
        self,
        account_code: str,
        entry_type: str | None = None,
        side_debit: bool | None = None,
    ) -> list[JournalLine]:
        """Lines posted to ``account_code``, optionally filtered by entry type and side."""
        query = (
            select(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(
                JournalEntry.tenant_id == self.tenant_id,
                Account.code == str(account_code),
            )
        )
        if entry_type is not None:
            query = query.where(JournalEntry.entry_type == str(entry_type))
        if side_debit is True:
            query = query.where(JournalLine.debit_cents > 0)
        elif side_debit is False:
            query = query.where(JournalLine.credit_cents > 0)
        return list(self.session.execute(query.order_by(JournalLine.id)).scalars())

    def withdrawal_lines_on_equity(self) -> list[JournalLine]:
        """Withdrawal debits posted to Owner's Equity instead of Drawings."""
        return self.lines_for(
            AccountCode.OWNERS_EQUITY, entry_type=EntryType.WITHDRAWAL, side_debit=True
        )

    def order_account_totals(
        self,
        account_code: str,
        entry_types: Iterable[str] | None = None,
    ) -> dict[int, tuple[int, int]]:
        """
        (debits, credits) on one account per order id.

        Grouped in SQL by reference; every ``Order #<id>...`` reference
        (lifecycle, payments, corrections) contributes to its order.
        """
        query = (
            select(
                JournalEntry.reference,
                func.sum(JournalLine.debit_cents),
                func.sum(JournalLine.credit_cents),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.reference.like(ORDER_REFERENCE_LIKE),
                Account.code == str(account_code),
            )
            .group_by(JournalEntry.reference)
        )
        if entry_types is not None:
            query = query.where(JournalEntry.entry_type.in_([str(t) for t in entry_types]))

        totals: dict[int, tuple[int, int]] = {}
        for reference, debits, credits in self.session.execute(query).all():
            order_id = parse_order_id(reference)
            if order_id is None:
                continue
            prior_debits, prior_credits = totals.get(order_id, (0, 0))
            totals[order_id] = (prior_debits + int(debits or 0), prior_credits + int(credits or 0))
        return totals

    def order_account_balances(
        self,
        account_code: str,
        entry_types: Iterable[str] | None = None,
    ) -> dict[int, int]:
        """Debit-minus-credit balance on one account per order id."""
        return {
            order_id: debits - credits
            for order_id, (debits, credits) in self.order_account_totals(
                account_code, entry_types
            ).items()
        }

    def cash_movements(self, start: date, end: date) -> list[CashMovement]:
        """
        Cash-account debits (inflows) and credits (outflows) per entry type.

        Entries whose every line touches a cash account (cash-to-cash
        transfers) are excluded: they move no cash in or out of the business.
        """
        non_cash_lines = func.sum(case((Account.is_cash.is_(True), 0), else_=1))
        cash_only_entries = (
            select(JournalLine.journal_entry_id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(Account.tenant_id == self.tenant_id)
            .group_by(JournalLine.journal_entry_id)
            .having(non_cash_lines == 0)
        )

        query = (
            select(
                JournalEntry.entry_type,
                func.coalesce(func.sum(JournalLine.debit_cents), 0),
                func.coalesce(func.sum(JournalLine.credit_cents), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(
                and_(
                    JournalEntry.tenant_id == self.tenant_id,
                    JournalEntry.entry_date >= start,
                    JournalEntry.entry_date <= end,
                    Account.is_cash.is_(True),
                    JournalEntry.id.not_in(cash_only_entries),
                )
            )
            .group_by(JournalEntry.entry_type)
            .order_by(JournalEntry.entry_type)
        )
        return [
            CashMovement(entry_type=entry_type, inflow_cents=int(d), outflow_cents=int(c))
            for entry_type, d, c in self.session.execute(query).all()
        ]

    def cash_balance_as_of(self, as_of: date) -> int:
        """Combined debit-minus-credit balance of all cash accounts."""
        debits, credits = self.session.execute(
            select(
                func.coalesce(func.sum(JournalLine.debit_cents), 0),
                func.coalesce(func.sum(JournalLine.credit_cents), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.entry_date <= as_of,
                Account.is_cash.is_(True),
            )
        ).one()
        return int(debits) - int(credits)

    def last_close_date(self, on_or_before: date | None = None) -> date | None:
        query = select(func.max(JournalEntry.entry_date)).where(
            JournalEntry.tenant_id == self.tenant_id,
            JournalEntry.entry_type == EntryType.YEAR_END_CLOSE.value,
        )
        if on_or_before is not None:
            query = query.where(JournalEntry.entry_date <= on_or_before)
        return self.session.execute(query).scalar_one_or_none()

    def account_balance(self, account_code: str, as_of: date | None = None) -> int:
        """Debit-minus-credit balance of one account (optionally up to a date)."""
        query = (
            select(
                func.coalesce(func.sum(JournalLine.debit_cents), 0),
                func.coalesce(func.sum(JournalLine.credit_cents), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(
                JournalEntry.tenant_id == self.tenant_id,
                Account.code == str(account_code),
            )
        )
        if as_of is not None:
            query = query.where(JournalEntry.entry_date <= as_of)
        debits, credits = self.session.execute(query).one()
        return int(debits) - int(credits)
