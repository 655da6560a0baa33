"""
Tests for VerificationService.

Checks run in their own sessions, so every scenario commits before
verifying.  The clean scenario is a delivered sale with a deposit:

    kitchen stock   1000 g flour for $50.00, 10 boxes for $4.00
    order #7        $50.00 product - $5.00 discount + $3.00 shipping
                    $10.00 deposit, recipe 200 g flour + 1 box
"""

import threading
from datetime import date

import pytest

from ledger_config.schema import VerificationSettings
from ledger_engines.verification import CheckName, CheckStatus, LedgerVerificationChecker
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.inventory.models import RecipeLine
from ledger_modules.orders.models import OrderSnapshot, OrderStatus, PaymentSnapshot
from ledger_modules.orders.service import OrderLifecycleService
from ledger_services.verification_service import VerificationService

D = date(2024, 6, 1)


def _delivered_order(**overrides):
    deposit = PaymentSnapshot(
        payment_id=1, order_id=7, amount_cents=1000, payment_date=date(2024, 6, 10), is_deposit=True
    )
    fields = dict(
        order_id=7,
        status=OrderStatus.DELIVERED,
        gross_product_cents=5000,
        discount_cents=500,
        shipping_cents=300,
        delivery_date=date(2024, 6, 12),
        recipe=(RecipeLine("FLOUR", 200), RecipeLine("BOX", 1)),
        payments=(deposit,),
    )
    fields.update(overrides)
    return OrderSnapshot(**fields)


@pytest.fixture
def books(session, bakery, clock, inventory, order_book):
    """The clean scenario, committed."""
    inventory.record_purchase("FLOUR", "KITCHEN", 1000, 5000, D)
    inventory.record_purchase("BOX", "KITCHEN", 10, 400, D)

    order = order_book.put(_delivered_order())
    orders = OrderLifecycleService(session, bakery, clock, inventory)
    orders.record_payment(order.payments[0])
    orders.record_in_prep(order)
    orders.record_delivered(order)
    session.commit()
    return order_book


@pytest.fixture
def verifier(bakery, books, session_factory):
    return VerificationService(bakery, books, session_factory=session_factory)


class TestRunAllChecks:
    def test_clean_books_pass_every_check(self, verifier, captured_logs):
        results = verifier.run_all_checks()

        assert list(results) == list(CheckName)
        failing = {name: r.issues for name, r in results.items() if not r.ok}
        assert failing == {}

        summary = [r for r in captured_logs() if r["message"] == "verification_run_completed"][-1]
        assert summary["checks"] == 12
        assert summary["failed"] == []

    def test_run_selected_checks(self, verifier):
        results = verifier.run_all_checks([CheckName.AR_BALANCE, CheckName.WIP_BALANCE])
        assert set(results) == {"ar_balance", "wip_balance"}
        assert results["wip_balance"].report["orders_in_prep"] == 0

    def test_unknown_check_rejected_before_running(self, verifier):
        with pytest.raises(ValueError, match="Unknown verification check"):
            verifier.run_all_checks(["no_such_check"])

    def test_checks_do_not_write(self, verifier, session, bakery):
        before = LedgerSelector(session, bakery).count_entries()
        verifier.run_all_checks()
        session.expire_all()
        assert LedgerSelector(session, bakery).count_entries() == before


class TestDriftDetection:
    def test_cache_drift(self, verifier, inventory, session):
        flour = inventory.selector.get_ingredient("FLOUR")
        kitchen = inventory.selector.get_location("KITCHEN")
        inventory.selector.find_item(flour.id, kitchen.id).quantity_on_hand = 750
        session.commit()

        result = verifier.run_check(CheckName.INVENTORY_QUANTITIES)
        assert result.status == CheckStatus.FAILED
        assert result.issues == ("Inventory mismatch: Flour @ Kitchen - System: 750, Calculated: 800",)

    def test_gl_inventory_drift(self, verifier, post_entry, session):
        post_entry("1200", "1000", 500, EntryType.OTHER, D)
        session.commit()

        result = verifier.run_check(CheckName.INVENTORY_COST_ACCOUNTING)
        assert result.status == CheckStatus.FAILED
        assert "Difference=$5.00" in result.issues[0]

    def test_withdrawal_on_equity(self, verifier, post_entry, session):
        post_entry("3000", "1000", 2_500, EntryType.WITHDRAWAL, D)
        session.commit()
        assert not verifier.run_check(CheckName.WITHDRAWAL_ACCOUNTS).ok

    def test_receivable_drift(self, verifier, books):
        books.put(_delivered_order(shipping_cents=0))
        result = verifier.run_check(CheckName.AR_BALANCE)
        assert result.issues == (
            "Order #7: Expected AR=$35.00, GL AR=$38.00, Difference=-$3.00",
        )

    def test_gift_booked_as_sale(self, verifier, books):
        books.put(_delivered_order(is_gift=True))
        result = verifier.run_check(CheckName.GIFT_ORDER_ACCOUNTING)
        assert result.findings[0].details["order_ids"] == [7]

    def test_deposits_left_on_delivered_order(self, verifier, books, session, bakery, clock, inventory):
        order = books.put(
            OrderSnapshot(
                order_id=8,
                status=OrderStatus.DELIVERED,
                gross_product_cents=0,
                payments=(PaymentSnapshot(1, 8, 700, D, is_deposit=True),),
            )
        )
        OrderLifecycleService(session, bakery, clock, inventory).record_payment(order.payments[0])
        session.commit()

        result = verifier.run_check(CheckName.CUSTOMER_DEPOSITS)
        assert result.issues == (
            "Order #8 (delivered): Expected deposits balance=$0.00, GL shows=$7.00",
        )


class _BrokenChecker(LedgerVerificationChecker):
    def check_ar_balance(self, receivables):
        raise RuntimeError("boom")


class _BlockingChecker(LedgerVerificationChecker):
    def __init__(self, release, **kwargs):
        super().__init__(**kwargs)
        self.release = release

    def check_wip_balance(self, debits, credits, orders_in_prep):
        self.release.wait(5)
        return super().check_wip_balance(debits, credits, orders_in_prep)


class TestIsolation:
    def test_exception_becomes_error_result(self, bakery, books, session_factory, captured_logs):
        verifier = VerificationService(
            bakery, books, session_factory=session_factory, checker=_BrokenChecker()
        )
        results = verifier.run_all_checks()

        assert results["ar_balance"].status == CheckStatus.ERROR
        assert results["ar_balance"].error == "RuntimeError: boom"
        assert results["customer_deposits"].ok
        failed = [r for r in captured_logs() if r["message"] == "verification_check_failed"]
        assert failed[-1]["check_name"] == "ar_balance"

    def test_timeout_becomes_error_result(self, bakery, books, session_factory):
        release = threading.Event()
        verifier = VerificationService(
            bakery,
            books,
            settings=VerificationSettings(timeout_seconds=1.0, max_workers=12),
            session_factory=session_factory,
            checker=_BlockingChecker(release),
        )
        try:
            results = verifier.run_all_checks()
        finally:
            release.set()

        assert results["wip_balance"].status == CheckStatus.ERROR
        assert results["wip_balance"].error == "Check timed out after 1s"
        assert results["journal_entries_balanced"].ok
