"""Tests for chart seeding and audited line reassignment."""

import json
import logging
from dataclasses import replace
from io import StringIO

import pytest

from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.exceptions import AccountNotFoundError, ChartOfAccountsError, CorrectionError
from ledger_kernel.logging_config import StructuredFormatter, configure_logging, reset_logging
from ledger_kernel.models.account import NormalBalance
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.chart_service import ChartService
from ledger_kernel.services.correction_service import CorrectionService


class TestChartSeed:
    def test_seed_creates_every_account(self, session, bakery, ledger_config):
        codes = AccountSelector(session, bakery).codes()
        assert codes == {d.code for d in ledger_config.chart}

    def test_reseed_is_idempotent(self, session, bakery, ledger_config):
        result = ChartService(session, bakery).seed(ledger_config.chart)
        assert result.created == ()
        assert result.updated == ()
        assert len(result.unchanged) == len(ledger_config.chart)

    def test_reseed_refreshes_metadata(self, session, bakery, ledger_config):
        chart = [
            replace(d, name="Petty Cash") if d.code == "1000" else d
            for d in ledger_config.chart
        ]
        result = ChartService(session, bakery).seed(chart)
        assert result.updated == ("1000",)
        assert AccountSelector(session, bakery).get_by_code("1000").name == "Petty Cash"

    def test_structure_never_rewritten(self, session, bakery, ledger_config, captured_logs):
        chart = [
            replace(d, normal_balance=NormalBalance.CREDIT) if d.code == "1000" else d
            for d in ledger_config.chart
        ]
        result = ChartService(session, bakery).seed(chart)
        assert result.structure_conflicts == ("1000",)
        assert AccountSelector(session, bakery).get_by_code("1000").is_debit_normal
        assert any(r["message"] == "account_structure_conflict" for r in captured_logs())

    def test_incomplete_chart_fails_validation(self, session, ledger_config):
        tenant = ledger_config.tenant_context("florist")
        chart = [d for d in ledger_config.chart if d.code != "6070"]
        with pytest.raises(ChartOfAccountsError) as exc_info:
            ChartService(session, tenant).seed(chart)
        assert exc_info.value.missing_codes == ("6070",)

    def test_charts_are_per_tenant(self, session, bakery, ledger_config):
        tenant = ledger_config.tenant_context("florist")
        assert AccountSelector(session, tenant).codes() == set()

    def test_seed_logs_counts_at_info(self, session, ledger_config):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        reset_logging()
        configure_logging(level=logging.INFO, handler=handler)
        try:
            result = ChartService(session, ledger_config.tenant_context("florist")).seed(ledger_config.chart)
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

        records = [json.loads(line) for line in stream.getvalue().splitlines() if line]
        seeded = [r for r in records if r["message"] == "chart_seeded"]
        assert len(seeded) == 1
        assert seeded[0]["created_count"] == len(result.created) == len(ledger_config.chart)
        assert seeded[0]["unchanged_count"] == 0

    def test_update_metadata(self, session, bakery):
        account = ChartService(session, bakery).update_metadata("6080", name="Power", is_active=False)
        assert account.name == "Power"
        assert account.is_active is False
        assert account.label == "6080 - Power"


class TestCorrectionService:
    def test_reassign_withdrawal_to_drawings(self, session, bakery, post_entry, captured_logs):
        entry = post_entry("3000", "1000", 5000, entry_type=EntryType.WITHDRAWAL)
        selector = LedgerSelector(session, bakery)
        lines = selector.withdrawal_lines_on_equity()
        assert len(lines) == 1

        corrections = CorrectionService(session, bakery).reassign_lines(
            lines, "3100", "Withdrawal belongs on drawings"
        )

        assert len(corrections) == 1
        assert corrections[0].entry_id == entry.id
        assert (corrections[0].from_code, corrections[0].to_code) == ("3000", "3100")
        assert corrections[0].amount_cents == 5000
        assert selector.withdrawal_lines_on_equity() == []
        assert selector.account_balance("3100") == 5000
        assert entry.is_balanced

        record = [r for r in captured_logs() if r["message"] == "line_account_reassigned"][-1]
        assert record["before_account"] == "3000 - Owner's Equity"
        assert record["after_account"] == "3100 - Owner's Drawings"
        assert record["reason"] == "Withdrawal belongs on drawings"

    def test_reason_required(self, session, bakery, post_entry):
        entry = post_entry("3000", "1000", 100, entry_type=EntryType.WITHDRAWAL)
        with pytest.raises(CorrectionError):
            CorrectionService(session, bakery).reassign_line_account(entry.lines[0], "3100", "")

    def test_noop_rejected(self, session, bakery, post_entry):
        entry = post_entry("3100", "1000", 100, entry_type=EntryType.WITHDRAWAL)
        with pytest.raises(CorrectionError, match="already posts"):
            CorrectionService(session, bakery).reassign_line_account(entry.lines[0], "3100", "x")

    def test_unknown_target(self, session, bakery, post_entry):
        entry = post_entry("3000", "1000", 100, entry_type=EntryType.WITHDRAWAL)
        with pytest.raises(AccountNotFoundError):
            CorrectionService(session, bakery).reassign_line_account(entry.lines[0], "9999", "x")

    def test_other_tenant_line_rejected(self, session, bakery, travel, post_entry):
        entry = post_entry("3000", "1000", 100, entry_type=EntryType.WITHDRAWAL)
        with pytest.raises(CorrectionError, match="another tenant"):
            CorrectionService(session, travel).reassign_line_account(entry.lines[0], "3100", "x")
