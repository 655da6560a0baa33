"""
Tests for the pure statement builders in ledger_modules.reporting.statements.

Totals are built by hand here; the SQL side is covered by the reporting
service tests.
"""

from datetime import date

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_kernel.models.account import AccountType, NormalBalance
from ledger_kernel.selectors.ledger_selector import AccountTotals, CashMovement
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_cash_flow,
    build_equity_summary,
    build_financial_analysis,
    build_profit_and_loss,
    month_ranges,
    safe_days,
)

JAN_1 = date(2024, 1, 1)
JAN_30 = date(2024, 1, 30)

# code -> (type, normal side, is_cogs)
CHART = {
    "1000": (AccountType.ASSET, NormalBalance.DEBIT, False),
    "1100": (AccountType.ASSET, NormalBalance.DEBIT, False),
    "1200": (AccountType.ASSET, NormalBalance.DEBIT, False),
    "1310": (AccountType.ASSET, NormalBalance.CREDIT, False),
    "2000": (AccountType.LIABILITY, NormalBalance.CREDIT, False),
    "2200": (AccountType.LIABILITY, NormalBalance.CREDIT, False),
    "3000": (AccountType.EQUITY, NormalBalance.CREDIT, False),
    "3050": (AccountType.EQUITY, NormalBalance.CREDIT, False),
    "3100": (AccountType.EQUITY, NormalBalance.DEBIT, False),
    "4000": (AccountType.REVENUE, NormalBalance.CREDIT, False),
    "4010": (AccountType.REVENUE, NormalBalance.DEBIT, False),
    "5000": (AccountType.EXPENSE, NormalBalance.DEBIT, True),
    "6080": (AccountType.EXPENSE, NormalBalance.DEBIT, False),
}


def _totals(code, debit=0, credit=0):
    account_type, normal, is_cogs = CHART[code]
    return AccountTotals(
        account_id=int(code),
        code=code,
        name=f"Account {code}",
        account_type=account_type,
        normal_balance=normal,
        is_cash=code == "1000",
        is_cogs=is_cogs,
        debit_cents=debit,
        credit_cents=credit,
    )


@pytest.fixture
def pnl():
    return build_profit_and_loss(
        [
            _totals("4000", credit=10_000),
            _totals("4010", debit=500),
            _totals("5000", debit=3_000),
            _totals("6080", debit=1_000),
            _totals("1000", debit=9_999),
        ],
        JAN_1,
        JAN_30,
    )


class TestMonthRanges:
    def test_spans_year_end_and_leap_february(self):
        assert month_ranges(date(2023, 12, 20), date(2024, 2, 3)) == [
            (date(2023, 12, 1), date(2023, 12, 31)),
            (date(2024, 1, 1), date(2024, 1, 31)),
            (date(2024, 2, 1), date(2024, 2, 29)),
        ]

    def test_single_month(self):
        assert month_ranges(date(2024, 4, 5), date(2024, 4, 6)) == [(date(2024, 4, 1), date(2024, 4, 30))]

    def test_empty_when_reversed(self):
        assert month_ranges(date(2024, 5, 1), date(2024, 4, 1)) == []


class TestProfitAndLoss:
    def test_discount_nets_revenue(self, pnl):
        assert pnl.total_revenue_cents == 9_500
        assert pnl.total_cogs_cents == 3_000
        assert pnl.gross_profit_cents == 6_500
        assert pnl.total_opex_cents == 1_000
        assert pnl.net_income_cents == 5_500
        assert pnl.gross_margin_percent == 68.42
        assert pnl.net_margin_percent == 57.89

    def test_only_income_statement_accounts(self, pnl):
        assert [line.account_code for line in pnl.revenue] == ["4000", "4010"]
        assert [line.account_code for line in pnl.cogs] == ["5000"]
        assert [line.account_code for line in pnl.operating_expenses] == ["6080"]

    def test_inactive_accounts_left_out(self):
        pnl = build_profit_and_loss([_totals("4000"), _totals("6080", debit=100)], JAN_1, JAN_30)
        assert pnl.revenue == ()
        assert pnl.net_income_cents == -100

    def test_no_revenue_means_zero_margins(self):
        pnl = build_profit_and_loss([_totals("6080", debit=100)], JAN_1, JAN_30)
        assert pnl.gross_margin_percent == 0.0
        assert pnl.net_margin_percent == 0.0


class TestBalanceSheet:
    def test_contra_accounts_reduce_their_section(self):
        sheet = build_balance_sheet(
            [
                _totals("1000", debit=10_000),
                _totals("1310", credit=500),
                _totals("3000", credit=11_500),
                _totals("3100", debit=2_000),
            ],
            JAN_30,
            net_income_cents=0,
            last_close_date=None,
        )
        assert sheet.total_assets_cents == 9_500
        assert sheet.total_equity_cents == 9_500
        assert sheet.is_balanced

    def test_open_period_income_balances(self):
        sheet = build_balance_sheet(
            [_totals("1000", debit=3_000), _totals("3000", credit=1_000)],
            JAN_30,
            net_income_cents=2_000,
            last_close_date=date(2023, 12, 31),
        )
        assert sheet.liabilities_equity_and_income_cents == 3_000
        assert sheet.balance_difference_cents == 0
        assert sheet.amount_of("1000") == 3_000
        assert sheet.amount_of("9999") == 0

    def test_equity_summary(self):
        sheet = build_balance_sheet(
            [
                _totals("3000", credit=10_000),
                _totals("3050", credit=4_000),
                _totals("3100", debit=1_500),
            ],
            JAN_30,
            net_income_cents=700,
            last_close_date=None,
        )
        summary = build_equity_summary(sheet)
        assert summary.contributed_capital_cents == 10_000
        assert summary.drawings_cents == 1_500
        assert summary.retained_earnings_cents == 4_000
        assert summary.other_equity_cents == 0
        assert summary.total_equity_cents == 10_000 - 1_500 + 4_000 + 700

    @settings(max_examples=100)
    @given(
        postings=st.lists(
            st.tuples(
                st.sampled_from(sorted(CHART)),
                st.sampled_from(sorted(CHART)),
                st.integers(min_value=1, max_value=1_000_000),
            ),
            max_size=20,
        )
    )
    def test_balanced_postings_give_balanced_sheet(self, postings):
        debits = dict.fromkeys(CHART, 0)
        credits = dict.fromkeys(CHART, 0)
        for debit_code, credit_code, amount in postings:
            debits[debit_code] += amount
            credits[credit_code] += amount
        totals = [_totals(code, debits[code], credits[code]) for code in sorted(CHART)]

        pnl = build_profit_and_loss(totals, JAN_1, JAN_30)
        sheet = build_balance_sheet(totals, JAN_30, pnl.net_income_cents, None)

        assert sheet.is_balanced


class TestCashFlow:
    def test_categories(self):
        movements = [
            CashMovement("order_payment", 5_000, 0),
            CashMovement("investment", 10_000, 0),
            CashMovement("expense", 0, 2_000),
            CashMovement("inventory_purchase", 0, 3_000),
            CashMovement("withdrawal", 0, 1_000),
            CashMovement("other", 200, 100),
        ]
        flow = build_cash_flow(movements, JAN_1, JAN_30, 1_000, 10_100)

        assert flow.cash_inflows_cents == 15_200
        assert flow.cash_outflows_cents == 6_100
        assert flow.net_cash_flow_cents == 9_100
        assert flow.breakdown.sales_inflows_cents == 5_000
        assert flow.breakdown.investment_inflows_cents == 10_000
        assert flow.breakdown.other_inflows_cents == 200
        assert flow.breakdown.expense_outflows_cents == 5_000
        assert flow.breakdown.withdrawal_outflows_cents == 1_000
        assert flow.breakdown.other_outflows_cents == 100


class TestFinancialAnalysis:
    @pytest.fixture
    def analysis(self, pnl):
        sheet = build_balance_sheet(
            [
                _totals("1000", debit=20_000),
                _totals("1100", debit=4_750),
                _totals("1200", debit=3_000),
                _totals("2000", credit=6_000),
                _totals("3000", credit=15_000),
            ],
            JAN_30,
            net_income_cents=pnl.net_income_cents,
            last_close_date=None,
        )
        flow = build_cash_flow([CashMovement("expense", 0, 900)], JAN_1, JAN_30, 20_900, 20_000)
        return build_financial_analysis(pnl, sheet, flow, delivered_order_count=5)

    def test_turnover_and_days(self, analysis):
        efficiency = analysis.efficiency
        assert efficiency.ar_turnover == 2.0
        assert efficiency.avg_collection_period == 182.5
        assert efficiency.inventory_turnover == 1.0
        assert efficiency.days_inventory == 365.0
        assert efficiency.ap_turnover == 0.5
        assert efficiency.days_payable == 730.0
        assert efficiency.cash_conversion_cycle == -182.5

    def test_liquidity_and_leverage(self, analysis):
        assert analysis.inputs.total_equity_cents == 20_500
        assert analysis.inputs.current_assets_cents == 27_750
        assert analysis.liquidity.current_ratio == 4.63
        assert analysis.liquidity.quick_ratio == 4.13
        assert analysis.leverage.debt_to_equity == 0.29

    def test_operating_metrics(self, analysis):
        assert analysis.inputs.period_days == 30
        assert analysis.operations.cash_runway_months == 20.0
        assert analysis.operations.revenue_per_order_cents == 1_900
        assert analysis.operations.gross_profit_per_order_cents == 1_300

    def test_no_orders_no_per_order_metrics(self, pnl):
        sheet = build_balance_sheet([], JAN_30, 0, None)
        flow = build_cash_flow([], JAN_1, JAN_30, 0, 0)
        analysis = build_financial_analysis(pnl, sheet, flow)
        assert analysis.operations.revenue_per_order_cents is None
        assert analysis.efficiency.days_inventory is None
        assert analysis.liquidity.current_ratio == 0.0


@pytest.mark.parametrize("turnover,expected", [(2.0, 182.5), (0.0, None), (-1.0, None)])
def test_safe_days(turnover, expected):
    assert safe_days(turnover) == expected
