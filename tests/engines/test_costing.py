"""Tests for weighted moving-average costing."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ledger_engines.costing import (
    ItemValuation,
    effective_unit_cost,
    issue,
    receive,
    unit_cost_from_total,
    weighted_average_cost,
)


class TestWeightedAverage:
    def test_empty_item_takes_inflow_cost(self):
        assert weighted_average_cost(0, 0, 1000, 5000) == 5

    def test_blends_existing_and_inflow(self):
        # 1000 @ 5 + 1000 for 7000 -> 12000 / 2000
        assert weighted_average_cost(1000, 5, 1000, 7000) == 6

    def test_rounds_half_up(self):
        # (1*1 + 2) / 2 = 1.5 -> 2
        assert weighted_average_cost(1, 1, 1, 2) == 2

    def test_negative_stock_ignored(self):
        assert weighted_average_cost(-5, 9, 10, 30) == 3

    @pytest.mark.parametrize("qty", [0, -1])
    def test_non_positive_inflow_rejected(self, qty):
        with pytest.raises(ValueError):
            weighted_average_cost(10, 5, qty, 100)

    def test_emits_engine_trace(self, captured_logs):
        weighted_average_cost(0, 0, added_qty=10, added_cost_cents=50)
        traces = [r for r in captured_logs() if r["message"] == "LEDGER_ENGINE_TRACE"]
        assert traces[-1]["engine_name"] == "weighted_average_cost"
        assert len(traces[-1]["input_fingerprint"]) == 16


class TestReceiveIssue:
    def test_receive_then_issue(self):
        item = receive(ItemValuation(0, 0), 1000, 5000)
        item = receive(item, 1000, 7000)
        assert item == ItemValuation(2000, 6)

        item, cost = issue(item, 500)
        assert cost == 3000
        assert item == ItemValuation(1500, 6)
        assert item.value_cents == 9000

    def test_issue_everything_resets_average(self):
        item, cost = issue(ItemValuation(10, 7), 10)
        assert cost == 70
        assert item == ItemValuation(0, 0)

    def test_issue_more_than_on_hand_goes_negative(self):
        item, cost = issue(ItemValuation(3, 4), 5)
        assert cost == 20
        assert item.quantity == -2
        assert item.avg_cost_cents == 0


class TestUnitCosts:
    def test_unit_cost_from_total(self):
        assert unit_cost_from_total(3, 100) == 33
        assert unit_cost_from_total(2, 5) == 3
        assert unit_cost_from_total(0, 100) == 0

    @pytest.mark.parametrize(
        "avg, fallback, expected",
        [(6, 5, 6), (0, 5, 5), (None, 5, 5), (0, None, 0), (None, 0, 0)],
    )
    def test_effective_unit_cost(self, avg, fallback, expected):
        assert effective_unit_cost(avg, fallback) == expected


class TestCostingProperties:
    @given(
        inflows=st.lists(
            st.tuples(st.integers(1, 10_000), st.integers(0, 1_000)),
            min_size=1,
            max_size=10,
        )
    )
    @settings(max_examples=100)
    def test_average_within_inflow_unit_cost_range(self, inflows):
        """The blended average never leaves the range of the inflow unit costs (+-1 for rounding)."""
        item = ItemValuation(0, 0)
        unit_costs = []
        for qty, unit_cost in inflows:
            item = receive(item, qty, qty * unit_cost)
            unit_costs.append(unit_cost)
        assert item.quantity == sum(qty for qty, _ in inflows)
        assert min(unit_costs) - 1 <= item.avg_cost_cents <= max(unit_costs) + 1
