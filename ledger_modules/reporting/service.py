"""
Reporting Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Produces the financial statements -- profit and loss (single period and
monthly), balance sheet, cash flow, equity summary and financial analysis --
by bridging ``LedgerSelector`` aggregates to the pure functions in
``statements.py``.  This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  All aggregation runs in SQL grouped per
account (O(accounts)); all classification and arithmetic runs in
``statements.py``.

Invariants enforced
-------------------
* Read-only: nothing is posted, flushed or cached.
* Year-end close entries never count as period revenue or expense.
* The balance-sheet plug (open-period net income) is recomputed on every
  call from the last close on or before the report date.

Failure modes
-------------
* ``ValueError`` when ``end`` precedes ``start``, before any query runs.
* Selector failures propagate unchanged.
"""

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.periods import DEFAULT_EPOCH, open_period_start
from ledger_modules.reporting.models import (
    BalanceSheet,
    CashFlowStatement,
    EquitySummary,
    FinancialAnalysis,
    MonthlyProfitAndLoss,
    ProfitAndLoss,
)
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_cash_flow,
    build_equity_summary,
    build_financial_analysis,
    build_profit_and_loss,
    month_ranges,
)

logger = get_logger("modules.reporting.service")

_TEMPORARY_TYPES = (AccountType.REVENUE, AccountType.EXPENSE)
_PERMANENT_TYPES = (AccountType.ASSET, AccountType.LIABILITY, AccountType.EQUITY)


def _require_range(start: date, end: date) -> None:
    if end < start:
        raise ValueError(f"Report end date {end} precedes start date {start}")


class ReportingService:
    """
    Financial statement generation.

    Contract
    --------
    * Every public method returns a frozen report DTO.
    * Clock is injectable; it only supplies defaults (``as_of`` today).

    Non-goals
    ---------
    * Does NOT post journal entries.
    * Does NOT render HTML or spreadsheets.
    """

    def __init__(
        self,
        session: Session,
        tenant: TenantContext,
        clock: Clock | None = None,
        epoch: date = DEFAULT_EPOCH,
    ):
        self._clock = clock or SystemClock()
        self._epoch = epoch
        self._ledger = LedgerSelector(session, tenant)
        self._tenant_id = tenant.tenant_id

    # =========================================================================
    # Profit and loss
    # =========================================================================

    def profit_and_loss(self, start: date, end: date) -> ProfitAndLoss:
        _require_range(start, end)
        totals = self._ledger.account_totals(
            start,
            end,
            account_types=_TEMPORARY_TYPES,
            exclude_entry_types=(EntryType.YEAR_END_CLOSE,),
        )
        report = build_profit_and_loss(totals, start, end)
        logger.info(
            "profit_and_loss_generated",
            extra={
                "tenant_id": self._tenant_id,
                "start_date": str(start),
                "end_date": str(end),
                "net_income_cents": report.net_income_cents,
            },
        )
        return report

    def profit_and_loss_monthly(self, start: date, end: date) -> list[MonthlyProfitAndLoss]:
        """One statement per calendar month overlapping [start, end], oldest first."""
        _require_range(start, end)
        return [
            MonthlyProfitAndLoss(
                label=f"{month_start.year}-{month_start.month:02d}",
                month_start=month_start,
                month_end=month_end,
                statement=self.profit_and_loss(month_start, month_end),
            )
            for month_start, month_end in month_ranges(start, end)
        ]

    # =========================================================================
    # Balance sheet and equity
    # =========================================================================

    def balance_sheet(self, as_of: date | None = None) -> BalanceSheet:
        as_of = as_of or self._clock.today()
        totals = self._ledger.account_totals(end=as_of, account_types=_PERMANENT_TYPES)

        period_start, last_close = open_period_start(self._ledger, as_of, self._epoch)
        open_totals = self._ledger.account_totals(
            period_start,
            as_of,
            account_types=_TEMPORARY_TYPES,
            exclude_entry_types=(EntryType.YEAR_END_CLOSE,),
        )
        net_income = build_profit_and_loss(open_totals, period_start, as_of).net_income_cents

        sheet = build_balance_sheet(totals, as_of, net_income, last_close)
        if not sheet.is_balanced:
            logger.warning(
                "balance_sheet_out_of_balance",
                extra={
                    "tenant_id": self._tenant_id,
                    "as_of": str(as_of),
                    "balance_difference_cents": sheet.balance_difference_cents,
                },
            )
        return sheet

    def equity_summary(self, as_of: date | None = None) -> EquitySummary:
        return build_equity_summary(self.balance_sheet(as_of))

    # =========================================================================
    # Cash flow
    # =========================================================================

    def cash_flow(self, start: date, end: date) -> CashFlowStatement:
        """
        Cash in and out of the business within [start, end].

        The beginning balance is taken as of the day before ``start``.
        """
        _require_range(start, end)
        return build_cash_flow(
            self._ledger.cash_movements(start, end),
            start,
            end,
            beginning_balance_cents=self._ledger.cash_balance_as_of(start - timedelta(days=1)),
            ending_balance_cents=self._ledger.cash_balance_as_of(end),
        )

    # =========================================================================
    # Analysis
    # =========================================================================

    def financial_analysis(
        self,
        start: date,
        end: date,
        inventory_value_cents: int | None = None,
        delivered_order_count: int = 0,
    ) -> FinancialAnalysis:
        """
        Profitability, efficiency, leverage and liquidity ratios.

        Args:
            inventory_value_cents: Subsidiary inventory valuation, used in
                place of the GL inventory balance when given.
            delivered_order_count: Orders delivered in the period, for the
                per-order metrics.
        """
        _require_range(start, end)
        return build_financial_analysis(
            self.profit_and_loss(start, end),
            self.balance_sheet(end),
            self.cash_flow(start, end),
            inventory_value_cents=inventory_value_cents,
            delivered_order_count=delivered_order_count,
        )
