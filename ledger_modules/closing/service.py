"""
Year-End Close Service (``ledger_modules.closing.service``).

Responsibility
--------------
Closes the open period's revenue, expense and Owner's Drawings balances
into Retained Earnings (3050) with a single ``year_end_close`` entry.

Architecture position
---------------------
**Modules layer**.  Reads period activity through ``LedgerSelector``,
builds the entry with ``ledger_engines.posting.closing`` and writes it
through ``LedgerService``.

Invariants enforced
-------------------
* Closes only move forward: a close dated on or before the latest close
  raises ``AlreadyClosedError`` and leaves the ledger unchanged.
* The closed period runs from the day after the previous close (or the
  epoch) through the close date.  Earlier close entries never count as
  period activity.
* After a close, every revenue and expense account nets to zero for the
  closed period and the balance sheet stays balanced.

Failure modes
-------------
* ``AlreadyClosedError`` -- close already recorded on or after the date.
* ``ValidationError`` subclasses from ``LedgerService`` propagate.

Audit relevance
---------------
Logs ``year_end_closed`` with net income, drawings and the entry id, or
``year_end_nothing_to_close``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from sqlalchemy.orm import Session

from ledger_engines.posting.closing import ClosingBalance, net_income_from, year_end_close_entry
from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.exceptions import AlreadyClosedError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_modules.periods import DEFAULT_EPOCH, open_period_start

logger = get_logger("modules.closing.service")


class CloseStatus(str, Enum):
    CLOSED = "closed"
    NOTHING_TO_CLOSE = "nothing_to_close"


@dataclass(frozen=True)
class CloseResult:
    status: CloseStatus
    close_date: date
    period_start: date
    net_income_cents: int
    drawings_cents: int
    entry: JournalEntry | None = None

    @property
    def nothing_to_close(self) -> bool:
        return self.status is CloseStatus.NOTHING_TO_CLOSE


class YearEndCloseService(BaseService):
    """Posts year-end closing entries."""

    def __init__(self, session: Session, tenant: TenantContext, epoch: date = DEFAULT_EPOCH):
        super().__init__(session, tenant)
        self._epoch = epoch
        self._ledger_selector = LedgerSelector(session, tenant)
        self._ledger = LedgerService(session, tenant)

    def close_year(self, close_date: date) -> CloseResult:
        """
        Close the open period ending on ``close_date``.

        Raises:
            AlreadyClosedError: a close already exists on or after
                ``close_date``.
        """
        last_close = self._ledger_selector.last_close_date()
        if last_close is not None and close_date <= last_close:
            raise AlreadyClosedError(close_date, last_close)

        period_start, _ = open_period_start(self._ledger_selector, close_date, self._epoch)
        balances = self.temporary_balances(period_start, close_date)
        drawings = self.drawings_balance(period_start, close_date)
        net_income = net_income_from(balances)

        spec = year_end_close_entry(close_date, balances, drawings)
        if spec is None:
            logger.info(
                "year_end_nothing_to_close",
                extra={"close_date": str(close_date), "period_start": str(period_start)},
            )
            return CloseResult(
                status=CloseStatus.NOTHING_TO_CLOSE,
                close_date=close_date,
                period_start=period_start,
                net_income_cents=0,
                drawings_cents=0,
            )

        with LogContext.bind(correlation_id=spec.reference):
            # the reference names the year only, so a second close in the
            # same year must not be absorbed as a duplicate
            entry = self._ledger.post(spec)
            logger.info(
                "year_end_closed",
                extra={
                    "close_date": str(close_date),
                    "period_start": str(period_start),
                    "net_income_cents": net_income,
                    "drawings_cents": drawings,
                    "entry_id": entry.id,
                },
            )
        return CloseResult(
            status=CloseStatus.CLOSED,
            close_date=close_date,
            period_start=period_start,
            net_income_cents=net_income,
            drawings_cents=drawings,
            entry=entry,
        )

    def temporary_balances(self, start: date, end: date) -> list[ClosingBalance]:
        """Revenue and expense accounts with non-zero activity in [start, end]."""
        return [
            ClosingBalance(code=t.code, name=t.name, raw_cents=t.raw)
            for t in self._ledger_selector.account_totals(
                start,
                end,
                account_types=(AccountType.REVENUE, AccountType.EXPENSE),
                exclude_entry_types=(EntryType.YEAR_END_CLOSE,),
            )
            if t.raw != 0
        ]

    def drawings_balance(self, start: date, end: date) -> int:
        """Owner's Drawings debits minus credits in [start, end], closes excluded."""
        for totals in self._ledger_selector.account_totals(
            start,
            end,
            account_types=(AccountType.EQUITY,),
            exclude_entry_types=(EntryType.YEAR_END_CLOSE,),
        ):
            if totals.code == AccountCode.OWNERS_DRAWINGS:
                return totals.raw
        return 0
