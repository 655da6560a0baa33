"""
Order Lifecycle Service (``ledger_modules.orders.service``).

Responsibility
--------------
Posts the journal entries of an order's life: consumption into WIP when it
goes into prep, revenue and COGS (or gift expense) on delivery, reversal on
cancellation, and customer payments.

Architecture
------------
Layer: **Modules**.  Composes ``InventoryService`` (stock consumption),
``ledger_engines.posting.orders`` (entry construction) and
``LedgerService.post_once`` (idempotent persistence).

Invariants
----------
- Every lifecycle entry of an order carries the reference ``Order #<id>``;
  posting is idempotent on (reference, entry_type).
- Delivery COGS are taken from the in-prep entry's credit lines, so WIP is
  relieved by exactly what was put into it.
- A cancellation reverses only an order that went into prep and was
  neither delivered nor already canceled.

Failure Modes
-------------
- Inventory errors propagate from ``consume_for_order`` and nothing of the
  prep step is written.
- Ledger validation errors propagate from ``LedgerService``.

Audit Relevance
---------------
The verification checks ``order_wip_consistency``, ``ar_balance``,
``customer_deposits`` and ``gift_order_accounting`` reconcile what this
service posts against the order snapshots.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from ledger_engines.posting import (
    canceled_entry,
    cogs_split,
    gift_delivered_entry,
    in_prep_entry,
    payment_entry,
    sale_delivered_entry,
)
from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entry_types import OrderEntryType
from ledger_kernel.domain.lines import EntryAttrs, LineSpec
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService, PostingResult
from ledger_kernel.utils.references import order_payment_reference, order_reference
from ledger_modules.inventory.service import InventoryService
from ledger_modules.orders.models import OrderSnapshot, OrderStatus, PaymentSnapshot

logger = get_logger("modules.orders.service")


class OrderLifecycleService(BaseService):
    """
    Journal entries for order status changes and payments.

    Contract
    --------
    Each method takes an ``OrderSnapshot`` (or ``PaymentSnapshot``) and
    returns a ``PostingResult``: POSTED, ALREADY_EXISTS, or SKIPPED when the
    event has no accounting effect.

    Non-goals
    ---------
    - Does NOT persist or mutate orders; the storefront owns them.
    """

    def __init__(
        self,
        session: Session,
        tenant: TenantContext,
        clock: Clock | None = None,
        inventory: InventoryService | None = None,
    ):
        super().__init__(session, tenant)
        self._clock = clock or SystemClock()
        self._ledger = LedgerService(session, tenant)
        self._journal = JournalSelector(session, tenant)
        self._inventory = inventory or InventoryService(session, tenant)

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def handle_status_change(self, order: OrderSnapshot) -> PostingResult:
        """Dispatch on the order's (new) status."""
        status = OrderStatus(order.status)
        if status is OrderStatus.IN_PREP:
            return self.record_in_prep(order)
        if status is OrderStatus.DELIVERED:
            return self.record_delivered(order)
        if status is OrderStatus.CANCELED:
            return self.record_canceled(order)
        return PostingResult.skipped(f"No accounting for status {status.value}")

    def record_in_prep(self, order: OrderSnapshot) -> PostingResult:
        """
        Consume the recipe at the prep location and move its cost into WIP.

        Stock is consumed only once: an existing in-prep entry short-circuits
        before any movement is recorded.
        """
        reference = order_reference(order.order_id)
        existing = self._journal.find(reference, OrderEntryType.ORDER_IN_PREP)
        if existing is not None:
            return PostingResult.already_exists(existing)

        entry_date = order.delivery_date or self._clock.today()
        with LogContext.bind(correlation_id=reference):
            with self.session.begin_nested():
                # a prep interrupted before posting keeps its movements
                consumption = self._inventory.order_consumption(order.order_id)
                if not consumption.movements:
                    consumption = self._inventory.consume_for_order(
                        order.order_id, order.recipe, order.prep_location_code, entry_date
                    )
                spec = in_prep_entry(order.order_id, entry_date, consumption.costs_by_type)
                if spec is None:
                    logger.info(
                        "order_in_prep_without_cost",
                        extra={"order_id": order.order_id, "movements": len(consumption.movements)},
                    )
                    return PostingResult.skipped(f"Order #{order.order_id} consumed no costed stock")
                return self._ledger.post_once(spec)

    def record_delivered(self, order: OrderSnapshot) -> PostingResult:
        """
        Recognize the sale (or the gift expense) and relieve WIP.

        Dated the actual delivery date, else the planned one, else today.
        """
        reference = order_reference(order.order_id)
        existing = self._journal.find(reference, OrderEntryType.ORDER_DELIVERED)
        if existing is not None:
            return PostingResult.already_exists(existing)

        entry_date = order.actual_delivery_date or order.delivery_date or self._clock.today()
        prep_lines = self.in_prep_lines(order.order_id)

        if order.is_gift:
            cost = sum(
                line.debit_cents for line in prep_lines if line.account_code == AccountCode.WIP_INVENTORY
            )
            spec = gift_delivered_entry(order.order_id, entry_date, cost)
        else:
            credits: dict[str, int] = {}
            for line in prep_lines:
                if line.credit_cents > 0:
                    credits[line.account_code] = credits.get(line.account_code, 0) + line.credit_cents
            spec = sale_delivered_entry(
                order_id=order.order_id,
                entry_date=entry_date,
                gross_product_cents=order.gross_product_cents,
                discount_cents=order.discount_cents,
                shipping_cents=order.shipping_cents,
                deposits_cents=order.deposits_paid_cents(on_or_before=entry_date),
                cogs_by_account=cogs_split(credits),
            )

        if spec is None:
            return PostingResult.skipped(f"Order #{order.order_id} has nothing to recognize")
        with LogContext.bind(correlation_id=reference):
            return self._ledger.post_once(spec)

    def record_canceled(self, order: OrderSnapshot) -> PostingResult:
        """
        Reverse the in-prep entry (dated today) and restore the consumed stock.
        """
        reference = order_reference(order.order_id)
        prep = self._journal.find(reference, OrderEntryType.ORDER_IN_PREP)
        if prep is None:
            return PostingResult.skipped(f"Order #{order.order_id} never went into prep")
        existing = self._journal.find(reference, OrderEntryType.ORDER_CANCELED)
        if existing is not None:
            return PostingResult.already_exists(existing)
        if self._journal.exists(reference, OrderEntryType.ORDER_DELIVERED):
            return PostingResult.skipped(f"Order #{order.order_id} was already delivered")

        spec = canceled_entry(order.order_id, self._clock.today(), self._journal.line_specs(prep))
        with LogContext.bind(correlation_id=reference):
            with self.session.begin_nested():
                result = self._ledger.post_once(spec)
                self._inventory.reverse_order_consumption(order.order_id)
        return result

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    @staticmethod
    def _payment_spec(payment: PaymentSnapshot, customer_name: str | None):
        return payment_entry(
            order_id=payment.order_id,
            payment_id=payment.payment_id,
            payment_date=payment.payment_date,
            paid_to_code=payment.paid_to_code,
            amount_cents=payment.amount_cents,
            is_deposit=payment.is_deposit,
            customer_amount_cents=payment.customer_amount_cents,
            partner_amount_cents=payment.partner_amount_cents,
            partner_payable_code=payment.partner_payable_code,
            partner_name=payment.partner_name,
            customer_name=customer_name,
        )

    def record_payment(self, payment: PaymentSnapshot, customer_name: str | None = None) -> PostingResult:
        return self._ledger.post_once(self._payment_spec(payment, customer_name))

    def update_payment(self, payment: PaymentSnapshot, customer_name: str | None = None) -> JournalEntry:
        """
        Bring a payment's entry in line with the edited payment.

        The entry is found by reference; its lines are replaced, or a new
        entry is posted when none exists yet.
        """
        spec = self._payment_spec(payment, customer_name)
        existing = self._journal.find(spec.reference, OrderEntryType.ORDER_PAYMENT)
        if existing is None:
            return self._ledger.post(spec)
        return self._ledger.update(
            existing,
            EntryAttrs(entry_date=spec.entry_date, description=spec.description),
            spec.lines,
        )

    def delete_payment(self, order_id: int, payment_id: int) -> bool:
        entry = self._journal.find(
            order_payment_reference(order_id, payment_id), OrderEntryType.ORDER_PAYMENT
        )
        if entry is None:
            return False
        self._ledger.delete(entry)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def in_prep_lines(self, order_id: int) -> tuple[LineSpec, ...]:
        prep = self._journal.find(order_reference(order_id), OrderEntryType.ORDER_IN_PREP)
        if prep is None:
            return ()
        return self._journal.line_specs(prep)
