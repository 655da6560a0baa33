"""
Pure financial statement transformation functions.

These functions turn per-account totals (``AccountTotals`` rows aggregated
in SQL by ``LedgerSelector``) and cash movement summaries into the
statement DTOs of ``models.py``.  ZERO I/O. ZERO side effects.

All money is integer cents.  Functions follow the engine purity convention:
- No database access
- No clock access
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Sequence
from datetime import date

from ledger_kernel.domain.account_codes import AccountCode, InventoryType
from ledger_kernel.domain.entry_types import BookingEntryType, EntryType, OrderEntryType
from ledger_kernel.models.account import AccountType, NormalBalance
from ledger_kernel.selectors.ledger_selector import AccountTotals, CashMovement
from ledger_kernel.utils.currency import safe_divide, safe_percent
from ledger_modules.reporting.models import (
    AnalysisInputs,
    BalanceSheet,
    CashFlowBreakdown,
    CashFlowStatement,
    Efficiency,
    EquitySummary,
    FinancialAnalysis,
    Leverage,
    Liquidity,
    OperatingMetrics,
    Profitability,
    ProfitAndLoss,
    StatementLine,
)

# Cash categories by entry type
SALES_INFLOW_TYPES = frozenset({
    EntryType.SALE.value,
    OrderEntryType.ORDER_PAYMENT.value,
    BookingEntryType.BOOKING_PAYMENT.value,
})
INVESTMENT_INFLOW_TYPES = frozenset({EntryType.INVESTMENT.value})
EXPENSE_OUTFLOW_TYPES = frozenset({EntryType.EXPENSE.value, EntryType.INVENTORY_PURCHASE.value})
WITHDRAWAL_OUTFLOW_TYPES = frozenset({EntryType.WITHDRAWAL.value})

INVENTORY_ACCOUNTS = tuple(itype.inventory_account.value for itype in InventoryType)


# =========================================================================
# Helpers
# =========================================================================


def statement_line(totals: AccountTotals) -> StatementLine:
    return StatementLine(
        account_code=totals.code,
        account_name=totals.name,
        amount_cents=totals.balance,
        is_debit_normal=totals.normal_balance is NormalBalance.DEBIT,
    )


def _has_activity(totals: AccountTotals) -> bool:
    return totals.debit_cents != 0 or totals.credit_cents != 0


def _total(lines: Iterable[StatementLine], debit_section: bool) -> int:
    """Section total; contra accounts (normal side opposite the section) subtract."""
    return sum(
        line.amount_cents if line.is_debit_normal == debit_section else -line.amount_cents
        for line in lines
    )


def safe_days(turnover: float) -> float | None:
    """365 / turnover to one decimal; None when turnover is not positive."""
    if turnover <= 0:
        return None
    return round(365.0 / turnover, 1)


def month_ranges(start: date, end: date) -> list[tuple[date, date]]:
    """
    Calendar months overlapping [start, end], each as (first day, last day).

    Example:
        >>> month_ranges(date(2024, 1, 15), date(2024, 2, 10))
        [(datetime.date(2024, 1, 1), datetime.date(2024, 1, 31)), (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))]
    """
    ranges = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        last_day = calendar.monthrange(year, month)[1]
        ranges.append((date(year, month, 1), date(year, month, last_day)))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return ranges


# =========================================================================
# Profit and loss
# =========================================================================


def build_profit_and_loss(
    totals: Sequence[AccountTotals],
    start: date,
    end: date,
) -> ProfitAndLoss:
    """
    Classify revenue, COGS and operating expense accounts.

    Only accounts with activity in the window appear.  COGS are the expense
    accounts flagged ``is_cogs``; every other expense account is operating.
    Margins are 0.0 when revenue is not positive.
    """
    active = [t for t in totals if _has_activity(t)]
    revenue = tuple(statement_line(t) for t in active if t.account_type is AccountType.REVENUE)
    cogs = tuple(
        statement_line(t) for t in active if t.account_type is AccountType.EXPENSE and t.is_cogs
    )
    opex = tuple(
        statement_line(t) for t in active if t.account_type is AccountType.EXPENSE and not t.is_cogs
    )

    total_revenue = _total(revenue, debit_section=False)
    total_cogs = _total(cogs, debit_section=True)
    total_opex = _total(opex, debit_section=True)
    gross_profit = total_revenue - total_cogs
    operating_income = gross_profit - total_opex
    net_income = operating_income

    return ProfitAndLoss(
        start_date=start,
        end_date=end,
        revenue=revenue,
        cogs=cogs,
        operating_expenses=opex,
        total_revenue_cents=total_revenue,
        total_cogs_cents=total_cogs,
        gross_profit_cents=gross_profit,
        total_opex_cents=total_opex,
        operating_income_cents=operating_income,
        net_income_cents=net_income,
        gross_margin_percent=safe_percent(gross_profit, total_revenue),
        operating_margin_percent=safe_percent(operating_income, total_revenue),
        net_margin_percent=safe_percent(net_income, total_revenue),
    )


# =========================================================================
# Balance sheet
# =========================================================================


def build_balance_sheet(
    totals: Sequence[AccountTotals],
    as_of: date,
    net_income_cents: int,
    last_close_date: date | None,
) -> BalanceSheet:
    """
    Every asset, liability and equity account, zero balances included.

    Contra accounts reduce their section: Owner's Drawings reduces equity,
    accumulated depreciation reduces assets.
    ``net_income_cents`` is the open period's income: revenue and expense
    activity not yet closed into retained earnings.
    """
    assets, liabilities, equity = [], [], []
    for t in totals:
        line = statement_line(t)
        if t.account_type is AccountType.ASSET:
            assets.append(line)
        elif t.account_type is AccountType.LIABILITY:
            liabilities.append(line)
        elif t.account_type is AccountType.EQUITY:
            equity.append(line)

    return BalanceSheet(
        as_of=as_of,
        assets=tuple(assets),
        liabilities=tuple(liabilities),
        equity=tuple(equity),
        total_assets_cents=_total(assets, debit_section=True),
        total_liabilities_cents=_total(liabilities, debit_section=False),
        total_equity_cents=_total(equity, debit_section=False),
        net_income_cents=net_income_cents,
        last_close_date=last_close_date,
    )


def build_equity_summary(sheet: BalanceSheet) -> EquitySummary:
    """Split the balance sheet's equity section into its components."""
    contributed = sheet.amount_of(AccountCode.OWNERS_EQUITY)
    drawings = sheet.amount_of(AccountCode.OWNERS_DRAWINGS)
    retained = sheet.amount_of(AccountCode.RETAINED_EARNINGS)
    known = {AccountCode.OWNERS_EQUITY, AccountCode.OWNERS_DRAWINGS, AccountCode.RETAINED_EARNINGS}
    other = sum(
        -line.amount_cents if line.is_debit_normal else line.amount_cents
        for line in sheet.equity
        if line.account_code not in known
    )
    return EquitySummary(
        as_of=sheet.as_of,
        contributed_capital_cents=contributed,
        drawings_cents=drawings,
        retained_earnings_cents=retained,
        other_equity_cents=other,
        net_income_cents=sheet.net_income_cents,
    )


# =========================================================================
# Cash flow
# =========================================================================


def build_cash_flow(
    movements: Sequence[CashMovement],
    start: date,
    end: date,
    beginning_balance_cents: int,
    ending_balance_cents: int,
) -> CashFlowStatement:
    """
    Cash inflows and outflows by category.

    ``movements`` already exclude cash-to-cash entries; whatever is not a
    sale, investment, expense or withdrawal lands in "other".
    """
    inflows = sum(m.inflow_cents for m in movements)
    outflows = sum(m.outflow_cents for m in movements)
    sales = sum(m.inflow_cents for m in movements if m.entry_type in SALES_INFLOW_TYPES)
    investment = sum(m.inflow_cents for m in movements if m.entry_type in INVESTMENT_INFLOW_TYPES)
    expense = sum(m.outflow_cents for m in movements if m.entry_type in EXPENSE_OUTFLOW_TYPES)
    withdrawal = sum(m.outflow_cents for m in movements if m.entry_type in WITHDRAWAL_OUTFLOW_TYPES)

    return CashFlowStatement(
        start_date=start,
        end_date=end,
        beginning_balance_cents=beginning_balance_cents,
        ending_balance_cents=ending_balance_cents,
        cash_inflows_cents=inflows,
        cash_outflows_cents=outflows,
        breakdown=CashFlowBreakdown(
            sales_inflows_cents=sales,
            investment_inflows_cents=investment,
            other_inflows_cents=inflows - sales - investment,
            expense_outflows_cents=expense,
            withdrawal_outflows_cents=withdrawal,
            other_outflows_cents=outflows - expense - withdrawal,
        ),
    )


# =========================================================================
# Financial analysis
# =========================================================================


def build_financial_analysis(
    pnl: ProfitAndLoss,
    sheet: BalanceSheet,
    cash_flow: CashFlowStatement,
    inventory_value_cents: int | None = None,
    delivered_order_count: int = 0,
) -> FinancialAnalysis:
    """
    Ratios composed from the period's P&L, the closing balance sheet and
    the period's cash flow.

    ``inventory_value_cents`` overrides the GL inventory balance when the
    caller has the subsidiary valuation.  Current liabilities are all
    liabilities: the chart carries no long-term debt.
    """
    revenue = pnl.total_revenue_cents
    cogs = pnl.total_cogs_cents
    gross_profit = pnl.gross_profit_cents
    net_income = pnl.net_income_cents
    total_opex = pnl.total_opex_cents

    total_assets = sheet.total_assets_cents
    total_liabilities = sheet.total_liabilities_cents
    # open-period income is part of equity until it is closed
    total_equity = sheet.total_equity_cents + sheet.net_income_cents

    cash_balance = cash_flow.ending_balance_cents
    ar_balance = sheet.amount_of(AccountCode.ACCOUNTS_RECEIVABLE)
    inventory_gl = sum(sheet.amount_of(code) for code in INVENTORY_ACCOUNTS)
    inventory_value = inventory_gl if inventory_value_cents is None else inventory_value_cents
    wip_balance = sheet.amount_of(AccountCode.WIP_INVENTORY)

    current_assets = cash_balance + ar_balance + inventory_value + wip_balance
    current_liabilities = total_liabilities

    period_days = (pnl.end_date - pnl.start_date).days + 1
    annualization = 365.0 / period_days if period_days > 0 else 1.0

    inventory_turnover = safe_divide(cogs, inventory_value)
    ar_turnover = safe_divide(revenue, ar_balance)
    ap_turnover = safe_divide(cogs, current_liabilities)
    days_inventory = safe_days(inventory_turnover)
    collection_period = safe_days(ar_turnover)
    days_payable = safe_days(ap_turnover)
    if days_inventory is not None and collection_period is not None and days_payable is not None:
        cash_conversion_cycle = round(days_inventory + collection_period - days_payable, 1)
    else:
        cash_conversion_cycle = None

    if period_days > 0:
        monthly_opex = round(total_opex * 30.0 / period_days)
        monthly_purchases = round(cash_flow.breakdown.expense_outflows_cents * 30.0 / period_days)
    else:
        monthly_opex = monthly_purchases = 0

    return FinancialAnalysis(
        start_date=pnl.start_date,
        end_date=pnl.end_date,
        profitability=Profitability(
            gross_margin_percent=pnl.gross_margin_percent,
            operating_margin_percent=pnl.operating_margin_percent,
            net_margin_percent=pnl.net_margin_percent,
            cogs_share_percent=safe_percent(cogs, revenue),
            roe_percent=safe_percent(round(net_income * annualization), total_equity),
        ),
        efficiency=Efficiency(
            asset_turnover=safe_divide(revenue, total_assets),
            inventory_turnover=inventory_turnover,
            days_inventory=days_inventory,
            ar_turnover=ar_turnover,
            avg_collection_period=collection_period,
            ap_turnover=ap_turnover,
            days_payable=days_payable,
            cash_conversion_cycle=cash_conversion_cycle,
        ),
        leverage=Leverage(
            assets_to_equity=safe_divide(total_assets, total_equity),
            debt_to_equity=safe_divide(total_liabilities, total_equity),
        ),
        liquidity=Liquidity(
            current_ratio=safe_divide(current_assets, current_liabilities),
            quick_ratio=safe_divide(current_assets - inventory_value, current_liabilities),
        ),
        operations=OperatingMetrics(
            cash_runway_months=round(cash_balance / monthly_opex, 1) if monthly_opex > 0 else None,
            inventory_coverage_months=(
                round(cash_balance / monthly_purchases, 1) if monthly_purchases > 0 else None
            ),
            revenue_per_order_cents=(
                revenue // delivered_order_count if delivered_order_count > 0 else None
            ),
            gross_profit_per_order_cents=(
                gross_profit // delivered_order_count if delivered_order_count > 0 else None
            ),
        ),
        inputs=AnalysisInputs(
            revenue_cents=revenue,
            cogs_cents=cogs,
            gross_profit_cents=gross_profit,
            operating_income_cents=pnl.operating_income_cents,
            net_income_cents=net_income,
            total_opex_cents=total_opex,
            total_assets_cents=total_assets,
            total_liabilities_cents=total_liabilities,
            total_equity_cents=total_equity,
            cash_balance_cents=cash_balance,
            ar_balance_cents=ar_balance,
            inventory_value_cents=inventory_value,
            wip_balance_cents=wip_balance,
            current_assets_cents=current_assets,
            current_liabilities_cents=current_liabilities,
            delivered_order_count=delivered_order_count,
            period_days=period_days,
        ),
    )
