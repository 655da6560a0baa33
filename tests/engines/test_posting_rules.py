"""
Tests for the pure posting rules.

Every rule result must pass check_lines; the tests below pin the account
shape of each business event.
"""

from datetime import date

import pytest

from ledger_engines.posting import (
    ClosingBalance,
    account_reconciliation_entry,
    ar_correction_entry,
    booking_canceled_entry,
    booking_completed_entry,
    booking_payment_entry,
    canceled_entry,
    cogs_split,
    cost_adjustment_entry,
    deposit_transfer_entry,
    expense_entry,
    gift_correction_entry,
    gift_delivered_entry,
    in_prep_entry,
    inventory_reconciliation_entry,
    investment_entry,
    multi_purchase_entry,
    payment_entry,
    purchase_entry,
    return_entry,
    sale_delivered_entry,
    transfer_entry,
    usage_entry,
    withdrawal_entry,
    write_off_entry,
    year_end_close_entry,
)
from ledger_kernel.domain.account_codes import InventoryType
from ledger_kernel.domain.entry_types import BookingEntryType, EntryType, OrderEntryType
from ledger_kernel.domain.lines import LineSpec, check_lines
from ledger_kernel.exceptions import InvalidTransferError, MissingFieldError
from ledger_kernel.models.account import AccountType

D = date(2024, 3, 1)


def _by_account(spec):
    """{code: debits - credits} for an entry spec."""
    net: dict[str, int] = {}
    for line in spec.lines:
        net[line.account_code] = net.get(line.account_code, 0) + line.debit_cents - line.credit_cents
    return net


class TestInventoryRules:
    def test_purchase(self):
        spec = purchase_entry(D, InventoryType.PACKING, 4000, "Purchase #1", "Boxes")
        check_lines(spec.lines)
        assert _by_account(spec) == {"1210": 4000, "1000": -4000}
        assert spec.entry_type == EntryType.INVENTORY_PURCHASE

    def test_multi_purchase_skips_zero_types(self):
        spec = multi_purchase_entry(
            D,
            {InventoryType.INGREDIENTS: 500, InventoryType.PACKING: 0, InventoryType.KITCHEN: 200},
            "Shopping list",
            "Weekly shop",
            paid_from_code="2000",
        )
        check_lines(spec.lines)
        assert _by_account(spec) == {"1200": 500, "1300": 200, "2000": -700}

    def test_multi_purchase_all_zero(self):
        assert multi_purchase_entry(D, {}, "ref", "desc") is None

    def test_return(self):
        spec = return_entry(D, InventoryType.INGREDIENTS, 300, "Return #1", "Returned flour")
        assert _by_account(spec) == {"1000": 300, "1200": -300}

    def test_write_off(self):
        spec = write_off_entry(D, InventoryType.INGREDIENTS, 250, "Flour", "Pantry", note="mice")
        assert _by_account(spec) == {"6060": 250, "1200": -250}
        assert spec.description.endswith(": mice")
        assert write_off_entry(D, InventoryType.INGREDIENTS, 0, "Flour", "Pantry") is None

    @pytest.mark.parametrize(
        "itype, debit_code",
        [
            (InventoryType.INGREDIENTS, "5000"),
            (InventoryType.PACKING, "5010"),
            (InventoryType.KITCHEN, "6099"),
        ],
    )
    def test_usage_account_by_type(self, itype, debit_code):
        spec = usage_entry(D, itype, 100, "x", "y")
        assert _by_account(spec) == {debit_code: 100, itype.inventory_account: -100}

    def test_reconciliation_surplus_and_shortage(self):
        surplus = inventory_reconciliation_entry(D, InventoryType.INGREDIENTS, 120, "Flour", "Pantry")
        shortage = inventory_reconciliation_entry(D, InventoryType.INGREDIENTS, -120, "Flour", "Pantry")
        assert _by_account(surplus) == {"1200": 120, "6060": -120}
        assert _by_account(shortage) == {"6060": 120, "1200": -120}
        assert inventory_reconciliation_entry(D, InventoryType.INGREDIENTS, 0, "Flour", "Pantry") is None

    def test_cost_adjustment_nets_to_waste(self):
        spec = cost_adjustment_entry(
            D, {InventoryType.INGREDIENTS: 500, InventoryType.PACKING: -200}
        )
        check_lines(spec.lines)
        assert _by_account(spec) == {"1200": 500, "1210": -200, "6060": -300}

    def test_cost_adjustment_offsetting_drift_has_no_waste_line(self):
        spec = cost_adjustment_entry(D, {InventoryType.INGREDIENTS: 100, InventoryType.KITCHEN: -100})
        assert "6060" not in _by_account(spec)
        check_lines(spec.lines)

    def test_cost_adjustment_none_when_no_drift(self):
        assert cost_adjustment_entry(D, {InventoryType.INGREDIENTS: 0}) is None


class TestOrderRules:
    def test_in_prep(self):
        spec = in_prep_entry(7, D, {InventoryType.INGREDIENTS: 3000, InventoryType.PACKING: 400})
        check_lines(spec.lines)
        assert _by_account(spec) == {"1220": 3400, "1200": -3000, "1210": -400}
        assert spec.reference == "Order #7"
        assert spec.entry_type == OrderEntryType.ORDER_IN_PREP

    def test_in_prep_nothing_consumed(self):
        assert in_prep_entry(7, D, {}) is None

    def test_cogs_split_rolls_kitchen_into_ingredients(self):
        assert cogs_split({"1200": 3000, "1210": 400, "1300": 100, "1000": 5}) == {
            "5000": 3100,
            "5010": 400,
        }

    def test_sale_delivered_full(self):
        spec = sale_delivered_entry(
            7, D,
            gross_product_cents=10_000,
            discount_cents=1_000,
            shipping_cents=500,
            deposits_cents=2_000,
            cogs_by_account={"5000": 3_000, "5010": 400},
        )
        check_lines(spec.lines)
        assert _by_account(spec) == {
            "1100": 9_500 - 2_000,
            "4000": -10_500,
            "4010": 1_000,
            "2200": 2_000,
            "5000": 3_000,
            "5010": 400,
            "1220": -3_400,
        }

    def test_sale_delivered_nothing(self):
        assert sale_delivered_entry(7, D, 0, 0, 0, 0, {}) is None

    def test_gift_delivered(self):
        spec = gift_delivered_entry(7, D, 800)
        assert _by_account(spec) == {"6070": 800, "1220": -800}
        assert gift_delivered_entry(7, D, 0) is None

    def test_canceled_reverses_in_prep(self):
        prep = in_prep_entry(7, D, {InventoryType.INGREDIENTS: 3000})
        spec = canceled_entry(7, D, prep.lines)
        assert _by_account(spec) == {"1220": -3000, "1200": 3000}
        assert all(line.description.startswith("Reversal") for line in spec.lines)

    def test_payment_deposit_vs_settlement(self):
        deposit = payment_entry(7, 1, D, "1000", 2000, is_deposit=True)
        settlement = payment_entry(7, 2, D, "1010", 2000, is_deposit=False, customer_name="Ada")
        assert _by_account(deposit) == {"1000": 2000, "2200": -2000}
        assert _by_account(settlement) == {"1010": 2000, "1100": -2000}
        assert settlement.reference == "Order #7 payment #2"
        assert settlement.description == "Payment from Ada"

    def test_payment_partner_split(self):
        spec = payment_entry(
            7, 1, D, "1000", 3000, is_deposit=False,
            customer_amount_cents=2000, partner_amount_cents=1000, partner_payable_code="2000",
            partner_name="Courier",
        )
        check_lines(spec.lines)
        assert _by_account(spec) == {"1000": 3000, "1100": -2000, "2000": -1000}

    def test_payment_partner_without_payable(self):
        with pytest.raises(MissingFieldError):
            payment_entry(7, 1, D, "1000", 3000, False, 2000, 1000)


class TestCorrectionRules:
    def test_ar_correction_both_directions(self):
        up = ar_correction_entry(7, D, 500)
        down = ar_correction_entry(7, D, -500, offset_code="4100")
        assert _by_account(up) == {"1100": 500, "4000": -500}
        assert _by_account(down) == {"4100": 500, "1100": -500}
        assert up.reference == "Order #7 AR correction"
        assert ar_correction_entry(7, D, 0) is None

    def test_deposit_transfer(self):
        spec = deposit_transfer_entry(7, D, 900)
        assert _by_account(spec) == {"2200": 900, "1100": -900}
        assert deposit_transfer_entry(7, D, 0) is None

    def test_gift_correction(self):
        delivery = sale_delivered_entry(7, D, 5000, 0, 0, 0, {"5000": 1200})
        payment = payment_entry(7, 1, D, "1000", 5000, is_deposit=False)
        credits = [line for line in payment.lines if line.credit_cents > 0]
        spec = gift_correction_entry(7, D, delivery.lines, credits)
        check_lines(spec.lines)
        net = {k: v for k, v in _by_account(spec).items() if v != 0}
        # revenue and COGS undone, cost moved to 6070, payment reclassified to 4100
        assert net == {"4000": 5000, "5000": -1200, "6070": 1200, "4100": -5000}

    def test_gift_correction_nothing_to_do(self):
        assert gift_correction_entry(7, D, (), ()) is None

    def test_account_reconciliation_sides(self):
        cash_up = account_reconciliation_entry(D, "1000", "Cash", True, 300)
        payable_up = account_reconciliation_entry(D, "2000", "Accounts Payable", False, 300)
        assert _by_account(cash_up) == {"1000": 300, "6099": -300}
        assert _by_account(payable_up) == {"6099": 300, "2000": -300}
        assert account_reconciliation_entry(D, "1000", "Cash", True, 0) is None


class TestCashRules:
    def test_investment_and_withdrawal(self):
        assert _by_account(investment_entry(D, 5000)) == {"1000": 5000, "3000": -5000}
        assert _by_account(withdrawal_entry(D, 700, cash_code="1010")) == {"3100": 700, "1010": -700}

    def test_expense(self):
        spec = expense_entry(3, D, "6080", "1000", 1200, "Electric bill")
        assert _by_account(spec) == {"6080": 1200, "1000": -1200}
        assert spec.reference == "Expense #3"

    def test_transfer(self):
        spec = transfer_entry(1, D, "1000", AccountType.ASSET, "1010", AccountType.ASSET, 400, note="deposit")
        assert _by_account(spec) == {"1010": 400, "1000": -400}
        assert spec.description == "Transfer 1000 -> 1010: deposit"

    def test_transfer_same_account(self):
        with pytest.raises(InvalidTransferError):
            transfer_entry(1, D, "1000", AccountType.ASSET, "1000", AccountType.ASSET, 400)

    def test_transfer_to_revenue_rejected(self):
        with pytest.raises(InvalidTransferError):
            transfer_entry(1, D, "1000", AccountType.ASSET, "4000", AccountType.REVENUE, 400)


class TestBookingRules:
    def test_payment_advance_and_settlement(self):
        advance = booking_payment_entry(3, 1, D, 1000, is_advance=True)
        settle = booking_payment_entry(3, 2, D, 1000, is_advance=False)
        assert _by_account(advance) == {"1000": 1000, "2200": -1000}
        assert _by_account(settle) == {"1000": 1000, "1100": -1000}
        assert advance.entry_type == BookingEntryType.BOOKING_PAYMENT

    def test_completed_absorbs_advances(self):
        spec = booking_completed_entry(3, D, 5000, 2000)
        check_lines(spec.lines)
        assert _by_account(spec) == {"1100": 3000, "2200": 2000, "4000": -5000}
        assert spec.reference == "Booking #3 completed"

    def test_completed_advances_capped_at_commission(self):
        spec = booking_completed_entry(3, D, 5000, 8000)
        assert _by_account(spec) == {"2200": 5000, "4000": -5000}

    def test_completed_zero_commission(self):
        assert booking_completed_entry(3, D, 0, 0) is None

    def test_canceled(self):
        assert _by_account(booking_canceled_entry(3, D, 5000)) == {"4000": 5000, "1100": -5000}
        assert booking_canceled_entry(3, D, 0) is None


class TestClosingRule:
    def test_net_income_to_retained_earnings(self):
        balances = [
            ClosingBalance("4000", "Sales", -10_000),
            ClosingBalance("4010", "Sales Discounts", 500),
            ClosingBalance("5000", "Ingredients Used", 3_000),
        ]
        spec = year_end_close_entry(date(2024, 12, 31), balances, drawings_cents=1_000)
        check_lines(spec.lines)
        assert _by_account(spec) == {
            "4000": 10_000,
            "4010": -500,
            "5000": -3_000,
            "3100": -1_000,
            "3050": -(6_500 - 1_000),
        }
        assert spec.reference == "Year-End Close 2024"

    def test_net_loss_debits_retained_earnings(self):
        balances = [ClosingBalance("6099", "Other Expenses", 2_000)]
        spec = year_end_close_entry(date(2024, 12, 31), balances, 0)
        assert _by_account(spec) == {"6099": -2_000, "3050": 2_000}

    def test_nothing_to_close(self):
        assert year_end_close_entry(date(2024, 12, 31), [], 0) is None


def test_every_rule_output_passes_line_check():
    specs = [
        purchase_entry(D, InventoryType.INGREDIENTS, 1, "r", "d"),
        investment_entry(D, 1),
        withdrawal_entry(D, 1),
        deposit_transfer_entry(1, D, 1),
        booking_completed_entry(1, D, 3, 1),
        canceled_entry(1, D, (LineSpec.debit("1220", 1), LineSpec.credit("1200", 1))),
    ]
    for spec in specs:
        assert check_lines(spec.lines) > 0
