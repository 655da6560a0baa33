"""
Tests for YearEndCloseService.

Closing zeroes revenue, expense and Owner's Drawings for the period into
Retained Earnings (3050), once per close date.
"""

from datetime import date

import pytest

from ledger_engines.posting.closing import ClosingBalance, year_end_close_entry
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.exceptions import AlreadyClosedError
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.closing.service import CloseStatus, YearEndCloseService
from ledger_modules.reporting.service import ReportingService

YEAR_END = date(2024, 12, 31)


@pytest.fixture
def closer(session, bakery):
    return YearEndCloseService(session, bakery)


@pytest.fixture
def gl(session, bakery):
    return LedgerSelector(session, bakery)


@pytest.fixture
def year_2024(post_entry):
    post_entry("1000", "3000", 50_000, EntryType.INVESTMENT, date(2024, 1, 5))
    post_entry("1000", "4000", 20_000, EntryType.SALE, date(2024, 3, 1))
    post_entry("6080", "1000", 5_000, EntryType.EXPENSE, date(2024, 4, 1))
    post_entry("3100", "1000", 3_000, EntryType.WITHDRAWAL, date(2024, 5, 1))


class TestCloseYear:
    def test_closes_income_and_drawings(self, closer, gl, year_2024, captured_logs):
        result = closer.close_year(YEAR_END)

        assert result.status is CloseStatus.CLOSED
        assert result.period_start == date(2000, 1, 1)
        assert result.net_income_cents == 15_000
        assert result.drawings_cents == 3_000
        assert result.entry.reference == "Year-End Close 2024"
        assert [(line.account.code, line.debit_cents, line.credit_cents) for line in result.entry.lines] == [
            ("4000", 20_000, 0),
            ("6080", 0, 5_000),
            ("3100", 0, 3_000),
            ("3050", 0, 12_000),
        ]
        for code in ("4000", "6080", "3100"):
            assert gl.account_balance(code) == 0
        assert gl.account_balance("3050") == -12_000

        closed = [r for r in captured_logs() if r["message"] == "year_end_closed"][-1]
        assert closed["entry_id"] == result.entry.id

    def test_books_stay_balanced(self, closer, session, bakery, year_2024):
        closer.close_year(YEAR_END)
        sheet = ReportingService(session, bakery).balance_sheet(YEAR_END)
        assert sheet.net_income_cents == 0
        assert sheet.last_close_date == YEAR_END
        assert sheet.is_balanced

    def test_second_close_same_date_rejected(self, closer, year_2024, session, bakery):
        closer.close_year(YEAR_END)
        count = LedgerSelector(session, bakery).count_entries()
        with pytest.raises(AlreadyClosedError) as exc_info:
            closer.close_year(YEAR_END)
        assert exc_info.value.code == "ALREADY_CLOSED"
        assert LedgerSelector(session, bakery).count_entries() == count

    def test_close_before_existing_close_rejected(self, closer, post_entry, session, bakery):
        post_entry("1000", "4000", 10_000, EntryType.SALE, date(2024, 3, 1))
        closer.close_year(YEAR_END)
        count = LedgerSelector(session, bakery).count_entries()

        with pytest.raises(AlreadyClosedError) as exc_info:
            closer.close_year(date(2024, 6, 30))

        assert exc_info.value.last_close_date == YEAR_END
        assert LedgerSelector(session, bakery).count_entries() == count
        sheet = ReportingService(session, bakery).balance_sheet(date(2025, 1, 31))
        assert sheet.balance_difference_cents == 0

    def test_nothing_to_close(self, closer, captured_logs):
        result = closer.close_year(YEAR_END)
        assert result.nothing_to_close
        assert result.entry is None
        assert any(r["message"] == "year_end_nothing_to_close" for r in captured_logs())

    def test_next_year_starts_after_close(self, closer, post_entry, year_2024):
        closer.close_year(YEAR_END)
        post_entry("1000", "4000", 7_000, EntryType.SALE, date(2025, 2, 1))

        result = closer.close_year(date(2025, 12, 31))

        assert result.period_start == date(2025, 1, 1)
        assert result.net_income_cents == 7_000
        assert result.drawings_cents == 0

    def test_net_loss_debits_retained_earnings(self, closer, post_entry, gl):
        post_entry("6080", "1000", 5_000, EntryType.EXPENSE, date(2024, 4, 1))
        result = closer.close_year(YEAR_END)
        assert result.net_income_cents == -5_000
        assert gl.account_balance("3050") == 5_000


class TestCloseEntryRule:
    def test_none_when_nothing_to_close(self):
        assert year_end_close_entry(YEAR_END, [], 0) is None

    def test_drawings_only(self):
        spec = year_end_close_entry(YEAR_END, [], 2_000)
        assert [(line.account_code, line.side.value) for line in spec.lines] == [
            ("3100", "credit"),
            ("3050", "debit"),
        ]

    def test_balances_for_mixed_accounts(self):
        balances = [
            ClosingBalance("4000", "Sales", -10_000),
            ClosingBalance("4010", "Sales Discounts", 500),
            ClosingBalance("5000", "Ingredients Used (COGS)", 3_000),
        ]
        spec = year_end_close_entry(YEAR_END, balances, 1_000)
        assert spec.total_debits == spec.total_credits
        assert spec.entry_date == YEAR_END
