"""Tests for integer-cents helpers and entry reference conventions."""

import pytest

from ledger_kernel.utils.currency import (
    divide_round_half_up,
    format_cents,
    safe_divide,
    safe_percent,
)
from ledger_kernel.utils.references import (
    entity_reference,
    order_event_reference,
    order_payment_reference,
    order_reference,
    parse_order_id,
)


class TestFormatCents:
    @pytest.mark.parametrize(
        "cents, expected",
        [
            (0, "$0.00"),
            (5, "$0.05"),
            (123456, "$1,234.56"),
            (-1234, "-$12.34"),
        ],
    )
    def test_format(self, cents, expected):
        assert format_cents(cents) == expected


class TestDivision:
    @pytest.mark.parametrize(
        "numerator, denominator, expected",
        [(10, 4, 3), (9, 4, 2), (-10, 4, -3), (7000, 1000, 7), (12000, 2000, 6)],
    )
    def test_round_half_up(self, numerator, denominator, expected):
        assert divide_round_half_up(numerator, denominator) == expected

    def test_divide_by_zero_raises(self):
        with pytest.raises(ZeroDivisionError):
            divide_round_half_up(1, 0)

    def test_safe_divide(self):
        assert safe_divide(1, 3) == 0.33
        assert safe_divide(5, 0) == 0.0
        assert safe_divide(5, -2) == 0.0

    def test_safe_percent(self):
        assert safe_percent(250, 1000) == 25.0
        assert safe_percent(1, 3) == 33.33
        assert safe_percent(100, 0) == 0.0


class TestReferences:
    def test_order_references_share_prefix(self):
        assert order_reference(42) == "Order #42"
        assert order_payment_reference(42, 3) == "Order #42 payment #3"
        assert order_event_reference(42, "AR correction") == "Order #42 AR correction"

    @pytest.mark.parametrize(
        "reference, expected",
        [
            ("Order #42", 42),
            ("Order #42 payment #3", 42),
            ("Order #7 gift correction", 7),
            ("Booking #3 completed", None),
            ("Expense #9", None),
            (None, None),
            ("", None),
        ],
    )
    def test_parse_order_id(self, reference, expected):
        assert parse_order_id(reference) == expected

    def test_entity_reference(self):
        assert entity_reference("Booking", 3) == "Booking #3"
        assert entity_reference("Booking", 3, "completed") == "Booking #3 completed"
