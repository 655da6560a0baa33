"""
Financial Reporting Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for the statements the reporting service
returns: profit and loss (single period and monthly), balance sheet, cash
flow, equity summary and financial analysis ratios.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
functions in ``statements.py`` and returned to callers unchanged.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* Money is integer cents.  Margins and ratios are the only floats and are
  rounded to two decimals (days and months to one).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

# =========================================================================
# Shared
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """One account on a statement, signed by its normal balance."""

    account_code: str
    account_name: str
    amount_cents: int
    is_debit_normal: bool = True


# =========================================================================
# Profit and loss
# =========================================================================


@dataclass(frozen=True)
class ProfitAndLoss:
    start_date: date
    end_date: date
    revenue: tuple[StatementLine, ...]
    cogs: tuple[StatementLine, ...]
    operating_expenses: tuple[StatementLine, ...]
    total_revenue_cents: int
    total_cogs_cents: int
    gross_profit_cents: int
    total_opex_cents: int
    operating_income_cents: int
    net_income_cents: int
    gross_margin_percent: float
    operating_margin_percent: float
    net_margin_percent: float


@dataclass(frozen=True)
class MonthlyProfitAndLoss:
    """A profit and loss statement for one calendar month."""

    label: str  # "YYYY-MM"
    month_start: date
    month_end: date
    statement: ProfitAndLoss


# =========================================================================
# Balance sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheet:
    as_of: date
    assets: tuple[StatementLine, ...]
    liabilities: tuple[StatementLine, ...]
    equity: tuple[StatementLine, ...]
    total_assets_cents: int
    total_liabilities_cents: int
    total_equity_cents: int  # contra-equity (drawings) already subtracted
    net_income_cents: int  # open period, not yet closed to retained earnings
    last_close_date: date | None

    @property
    def liabilities_equity_and_income_cents(self) -> int:
        return self.total_liabilities_cents + self.total_equity_cents + self.net_income_cents

    @property
    def balance_difference_cents(self) -> int:
        """Assets minus (liabilities + equity + net income); zero on sound books."""
        return self.total_assets_cents - self.liabilities_equity_and_income_cents

    @property
    def is_balanced(self) -> bool:
        return self.balance_difference_cents == 0

    def amount_of(self, code: str) -> int:
        for line in self.assets + self.liabilities + self.equity:
            if line.account_code == code:
                return line.amount_cents
        return 0


# =========================================================================
# Cash flow
# =========================================================================


@dataclass(frozen=True)
class CashFlowBreakdown:
    sales_inflows_cents: int
    investment_inflows_cents: int
    other_inflows_cents: int
    expense_outflows_cents: int
    withdrawal_outflows_cents: int
    other_outflows_cents: int


@dataclass(frozen=True)
class CashFlowStatement:
    start_date: date
    end_date: date
    beginning_balance_cents: int
    ending_balance_cents: int
    cash_inflows_cents: int
    cash_outflows_cents: int
    breakdown: CashFlowBreakdown

    @property
    def net_cash_flow_cents(self) -> int:
        return self.cash_inflows_cents - self.cash_outflows_cents


# =========================================================================
# Equity
# =========================================================================


@dataclass(frozen=True)
class EquitySummary:
    as_of: date
    contributed_capital_cents: int
    drawings_cents: int
    retained_earnings_cents: int
    other_equity_cents: int
    net_income_cents: int

    @property
    def total_equity_cents(self) -> int:
        return (
            self.contributed_capital_cents
            - self.drawings_cents
            + self.retained_earnings_cents
            + self.other_equity_cents
            + self.net_income_cents
        )


# =========================================================================
# Financial analysis
# =========================================================================


@dataclass(frozen=True)
class Profitability:
    gross_margin_percent: float
    operating_margin_percent: float
    net_margin_percent: float
    cogs_share_percent: float
    roe_percent: float  # annualized


@dataclass(frozen=True)
class Efficiency:
    asset_turnover: float
    inventory_turnover: float
    days_inventory: float | None
    ar_turnover: float
    avg_collection_period: float | None
    ap_turnover: float
    days_payable: float | None
    cash_conversion_cycle: float | None


@dataclass(frozen=True)
class Leverage:
    assets_to_equity: float
    debt_to_equity: float


@dataclass(frozen=True)
class Liquidity:
    current_ratio: float
    quick_ratio: float


@dataclass(frozen=True)
class OperatingMetrics:
    cash_runway_months: float | None
    inventory_coverage_months: float | None
    revenue_per_order_cents: int | None
    gross_profit_per_order_cents: int | None


@dataclass(frozen=True)
class AnalysisInputs:
    """The figures every ratio was derived from."""

    revenue_cents: int
    cogs_cents: int
    gross_profit_cents: int
    operating_income_cents: int
    net_income_cents: int
    total_opex_cents: int
    total_assets_cents: int
    total_liabilities_cents: int
    total_equity_cents: int
    cash_balance_cents: int
    ar_balance_cents: int
    inventory_value_cents: int
    wip_balance_cents: int
    current_assets_cents: int
    current_liabilities_cents: int
    delivered_order_count: int
    period_days: int


@dataclass(frozen=True)
class FinancialAnalysis:
    start_date: date
    end_date: date
    profitability: Profitability
    efficiency: Efficiency
    leverage: Leverage
    liquidity: Liquidity
    operations: OperatingMetrics
    inputs: AnalysisInputs
