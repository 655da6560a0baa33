"""
Tests for RepairService.

Each repair is run against a ledger with the drift its check detects, then
run again to show it finds nothing left to do.
"""

from datetime import date

import pytest

from ledger_config.schema import VerificationSettings
from ledger_engines.verification import CheckName
from ledger_kernel.domain.entry_types import EntryType, OrderEntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec
from ledger_kernel.exceptions import AccountNotFoundError, RepairFailedError, UnknownRepairError
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.inventory.models import RecipeLine
from ledger_modules.orders.models import OrderSnapshot, OrderStatus, PaymentSnapshot
from ledger_modules.orders.service import OrderLifecycleService
from ledger_services.repair_service import RepairService

D = date(2024, 6, 1)


@pytest.fixture
def repairs(session, bakery, order_book, clock, inventory):
    return RepairService(session, bakery, order_book, clock, inventory=inventory)


@pytest.fixture
def gl(session, bakery):
    return LedgerSelector(session, bakery)


@pytest.fixture
def orders(session, bakery, clock, inventory):
    inventory.record_purchase("FLOUR", "KITCHEN", 1000, 5000, D)
    inventory.record_purchase("BOX", "KITCHEN", 10, 400, D)
    return OrderLifecycleService(session, bakery, clock, inventory)


def _order(order_id=7, **overrides):
    fields = dict(
        order_id=order_id,
        status=OrderStatus.DELIVERED,
        gross_product_cents=5000,
        discount_cents=500,
        shipping_cents=300,
        delivery_date=date(2024, 6, 12),
        recipe=(RecipeLine("FLOUR", 200), RecipeLine("BOX", 1)),
    )
    fields.update(overrides)
    return OrderSnapshot(**fields)


def _post_again(ledger, entry):
    return ledger.post(
        EntrySpec(
            entry_date=entry.entry_date,
            entry_type=entry.entry_type,
            description=entry.description,
            reference=entry.reference,
            lines=JournalSelector.line_specs(entry),
        )
    )


class TestDispatch:
    def test_unknown_repair(self, repairs):
        with pytest.raises(UnknownRepairError) as exc_info:
            repairs.run_repair("wip_balance")
        assert str(exc_info.value) == "Unknown repair type: wip_balance"
        assert exc_info.value.code == "UNKNOWN_REPAIR"

    def test_repairable_checks(self, repairs):
        assert repairs.is_repairable(CheckName.AR_BALANCE)
        assert not repairs.is_repairable(CheckName.JOURNAL_ENTRIES_BALANCED)
        assert len(repairs.repair_names) == 9

    def test_failed_repair_rolls_back(self, session, bakery, order_book, clock, gl):
        order_book.put(_order())
        repairs = RepairService(
            session, bakery, order_book, clock, settings=VerificationSettings(ar_correction_offset="9999")
        )
        before = gl.count_entries()

        with pytest.raises(RepairFailedError) as exc_info:
            repairs.run_repair(CheckName.AR_BALANCE)

        assert exc_info.value.code == "REPAIR_FAILED"
        assert str(exc_info.value).startswith("Repair 'ar_balance' rolled back:")
        assert isinstance(exc_info.value.__cause__, AccountNotFoundError)
        assert gl.count_entries() == before


class TestJournalRepairs:
    def test_withdrawal_moved_to_drawings(self, repairs, post_entry, gl, captured_logs):
        post_entry("3000", "1000", 2_500, EntryType.WITHDRAWAL, D)

        result = repairs.run_repair(CheckName.WITHDRAWAL_ACCOUNTS)

        assert result.changed
        assert "3000 -> 3100" in result.actions[0]
        assert gl.account_balance("3100") == 2_500
        assert gl.account_balance("3000") == 0
        assert not repairs.run_repair(CheckName.WITHDRAWAL_ACCOUNTS).changed

        completed = [r for r in captured_logs() if r["message"] == "repair_completed"]
        assert completed[0]["action_count"] == 1
        assert completed[0]["repair_name"] == "withdrawal_accounts"

    def test_duplicate_cogs_entries_deleted(self, repairs, ledger, session, bakery):
        spec = EntrySpec(
            entry_date=D,
            entry_type=OrderEntryType.ORDER_IN_PREP,
            description="Move ingredients to WIP for order #3",
            reference="Order #3",
            lines=(LineSpec.debit("1220", 100), LineSpec.credit("1200", 100)),
        )
        kept = ledger.post(spec)
        ledger.post(spec)
        ledger.post(spec)

        result = repairs.run_repair(CheckName.DUPLICATE_COGS_ENTRIES)

        assert result.actions == [f"Deleted 2 duplicate order_in_prep entries for 'Order #3' (kept #{kept.id})"]
        journal = JournalSelector(session, bakery)
        assert [e.id for e in journal.find_all("Order #3", OrderEntryType.ORDER_IN_PREP)] == [kept.id]
        assert not repairs.run_repair(CheckName.DUPLICATE_COGS_ENTRIES).changed


class TestInventoryRepairs:
    def test_quantities_recomputed(self, repairs, inventory):
        result = inventory.record_purchase("FLOUR", "PANTRY", 1000, 5000, D)
        result.item.quantity_on_hand = 10

        repair = repairs.run_repair(CheckName.INVENTORY_QUANTITIES)

        assert repair.actions[0].endswith("10 -> 1000")
        assert result.item.quantity_on_hand == 1000
        assert not repairs.run_repair(CheckName.INVENTORY_QUANTITIES).changed

    def test_duplicate_movements_removed_and_cache_recomputed(self, repairs, inventory):
        inventory.record_purchase("FLOUR", "PANTRY", 1000, 5000, D)
        first = inventory.record_usage("FLOUR", "PANTRY", 100, D, source_type="order", source_id=3)
        inventory.record_usage("FLOUR", "PANTRY", 100, D, source_type="order", source_id=3)

        result = repairs.run_repair(CheckName.DUPLICATE_MOVEMENTS)

        assert result.actions[0] == "Deleted 1 duplicate movements across 1 groups"
        assert first.item.quantity_on_hand == 900
        assert not repairs.run_repair(CheckName.DUPLICATE_MOVEMENTS).changed

    def test_movement_costs_backfilled(self, repairs, inventory):
        usage = inventory.record_usage("GLOVES", "KITCHEN", 2, D)
        result = repairs.run_repair(CheckName.MOVEMENT_COSTS)
        assert result.actions == ["Backfilled cost on 1 movements"]
        assert usage.movement.total_cost_cents == 40

    def test_gl_drift_expensed_today(self, repairs, post_entry, gl, session, bakery):
        post_entry("1200", "1000", 500, EntryType.OTHER, D)

        result = repairs.run_repair(CheckName.INVENTORY_COST_ACCOUNTING)

        assert len(result.actions) == 1
        assert gl.account_balance("1200") == 0
        assert gl.account_balance("6060") == 500
        adjustment = JournalSelector(session, bakery).find_all("Inventory Cost Adjustment")
        assert adjustment[0].entry_date == date(2024, 6, 15)
        assert not repairs.run_repair(CheckName.INVENTORY_COST_ACCOUNTING).changed

    def test_duplicate_prep_entry_deleted_before_expensing(self, repairs, orders, ledger, gl, session, bakery):
        prep = orders.record_in_prep(_order(order_id=3, status=OrderStatus.IN_PREP)).entry
        _post_again(ledger, prep)
        assert gl.account_balance("1200") == 3_000

        result = repairs.run_repair(CheckName.INVENTORY_COST_ACCOUNTING)

        assert result.actions == [
            f"Deleted 1 duplicate order_in_prep entries for 'Order #3' (kept #{prep.id})"
        ]
        journal = JournalSelector(session, bakery)
        assert [e.id for e in journal.find_all("Order #3", OrderEntryType.ORDER_IN_PREP)] == [prep.id]
        assert gl.account_balance("1200") == 4_000
        assert gl.account_balance("6060") == 0
        assert not repairs.run_repair(CheckName.DUPLICATE_COGS_ENTRIES).changed

    def test_only_drift_left_after_dedupe_is_expensed(self, repairs, orders, ledger, post_entry, gl):
        prep = orders.record_in_prep(_order(order_id=3, status=OrderStatus.IN_PREP)).entry
        _post_again(ledger, prep)
        post_entry("1200", "1000", 500, EntryType.OTHER, D)

        result = repairs.run_repair(CheckName.INVENTORY_COST_ACCOUNTING)

        assert len(result.actions) == 2
        assert result.actions[1].startswith("Adjusted 1200 Ingredients by -$5.00")
        assert gl.account_balance("1200") == 4_000
        assert gl.account_balance("6060") == 500

    def test_drift_below_tolerance_left_alone(self, repairs, post_entry, gl):
        post_entry("1200", "1000", 99, EntryType.OTHER, D)
        assert not repairs.run_repair(CheckName.INVENTORY_COST_ACCOUNTING).changed
        assert gl.account_balance("6060") == 0


class TestOrderRepairs:
    def test_gift_delivered_as_sale_converted(self, repairs, orders, order_book, gl, session, bakery):
        sale = _order(order_id=9, gross_product_cents=2000, discount_cents=0, shipping_cents=0)
        payment = PaymentSnapshot(1, 9, 500, date(2024, 6, 10))
        orders.record_payment(payment)
        orders.record_in_prep(sale)
        orders.record_delivered(sale)
        order_book.put(_order(order_id=9, is_gift=True, payments=(payment,)))

        result = repairs.run_repair(CheckName.GIFT_ORDER_ACCOUNTING)

        assert len(result.actions) == 1
        assert gl.account_balance("4000") == 0
        assert gl.account_balance("5000") == 0
        assert gl.account_balance("6070") == 1_040
        assert gl.account_balance("1220") == 0
        assert gl.account_balance("4100") == -500
        assert gl.account_balance("1100") == 0
        correction = JournalSelector(session, bakery).find_all("Order #9 gift correction")
        assert correction[0].is_balanced
        assert not repairs.run_repair(CheckName.GIFT_ORDER_ACCOUNTING).changed

    def test_missing_receivable_posted(self, repairs, order_book, gl):
        order_book.put(_order())

        result = repairs.run_repair(CheckName.AR_BALANCE)

        assert result.actions[0].startswith("Order #7: AR corrected by $48.00")
        assert gl.account_balance("1100") == 4_800
        assert gl.account_balance("4000") == -4_800
        assert not repairs.run_repair(CheckName.AR_BALANCE).changed

    def test_gift_orders_skip_receivable_repair(self, repairs, order_book):
        order_book.put(_order(is_gift=True))
        assert not repairs.run_repair(CheckName.AR_BALANCE).changed

    def test_deposits_transferred_for_delivered_order(self, repairs, orders, order_book, gl):
        deposit = PaymentSnapshot(1, 7, 1000, date(2024, 6, 10), is_deposit=True)
        orders.record_payment(deposit)
        order_book.put(_order(payments=(deposit,)))

        result = repairs.run_repair(CheckName.CUSTOMER_DEPOSITS)

        assert result.actions[0].startswith("Order #7: transferred $10.00")
        assert gl.account_balance("2200") == 0
        assert gl.account_balance("1100") == -1_000
        assert not repairs.run_repair(CheckName.CUSTOMER_DEPOSITS).changed

    def test_open_order_deposits_untouched(self, repairs, orders, order_book, gl):
        deposit = PaymentSnapshot(1, 7, 1000, date(2024, 6, 10), is_deposit=True)
        orders.record_payment(deposit)
        order_book.put(_order(status=OrderStatus.IN_PREP, payments=(deposit,)))
        assert not repairs.run_repair(CheckName.CUSTOMER_DEPOSITS).changed
        assert gl.account_balance("2200") == -1_000
