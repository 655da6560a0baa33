"""
ledger_services.repair_service -- Automated repairs for verification drift.

Responsibility:
    Brings the subsidiary records and the general ledger back into
    agreement for each repairable verification check: deduplication,
    cache recomputation, cost backfills, audited line reassignment and
    correcting journal entries.

Architecture position:
    Services -- imperative shell.  Writes only through the kernel
    LedgerService / CorrectionService and the InventoryService; the
    correcting entries themselves are built by the pure posting engine.

Invariants enforced:
    - Each repair runs inside one savepoint: it applies completely or not
      at all.
    - Each repair is idempotent: run against a ledger it already fixed it
      finds nothing to do.
    - Correcting entries are dated ``clock.today()``, never backdated.
    - Repairs run one at a time, in the caller's session and transaction.

Failure modes:
    - UnknownRepairError for a name with no registered repair.
    - RepairFailedError (a TransactionFailure) wrapping whatever aborted
      the repair; nothing from that repair persists.

Audit relevance:
    ``repair_completed`` is logged with the repair name bound in the log
    context and the list of actions taken.  Line reassignments log their
    own ``line_account_reassigned`` events.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ledger_config.schema import VerificationSettings
from ledger_engines.posting import (
    ar_correction_entry,
    cost_adjustment_entry,
    deposit_transfer_entry,
    gift_correction_entry,
)
from ledger_engines.verification import CheckName
from ledger_kernel.domain.account_codes import AccountCode, InventoryType
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entry_types import OrderEntryType
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.exceptions import RepairFailedError, UnknownRepairError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.correction_service import CorrectionService
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.utils.currency import format_cents
from ledger_kernel.utils.references import order_reference
from ledger_modules.inventory.service import InventoryService
from ledger_modules.orders.models import OrderBook, OrderStatus

logger = get_logger("services.repair")

WITHDRAWAL_REASON = "Withdrawal posted to Owner's Equity; moved to Owner's Drawings"


@dataclass
class RepairResult:
    """What one repair run changed."""

    repair_name: str
    actions: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.actions)

    def add(self, action: str) -> None:
        self.actions.append(action)


class RepairService(BaseService):
    """
    Dispatches repairs by check name.

    Contract:
        ``run_repair(name)`` returns a RepairResult; an empty action list
        means the ledger was already consistent for that check.
    """

    def __init__(
        self,
        session: Session,
        tenant: TenantContext,
        order_book: OrderBook,
        clock: Clock | None = None,
        settings: VerificationSettings | None = None,
        inventory: InventoryService | None = None,
    ):
        super().__init__(session, tenant)
        self._orders = order_book
        self._clock = clock or SystemClock()
        self._settings = settings or VerificationSettings()
        self._inventory = inventory or InventoryService(session, tenant)
        self._ledger = LedgerService(session, tenant)
        self._ledger_selector = LedgerSelector(session, tenant)
        self._journal = JournalSelector(session, tenant)
        self._corrections = CorrectionService(session, tenant)
        self._repairs: dict[str, Callable[[RepairResult], None]] = {
            CheckName.DUPLICATE_COGS_ENTRIES: self._repair_duplicate_cogs_entries,
            CheckName.DUPLICATE_MOVEMENTS: self._repair_duplicate_movements,
            CheckName.INVENTORY_QUANTITIES: self._repair_inventory_quantities,
            CheckName.MOVEMENT_COSTS: self._repair_movement_costs,
            CheckName.INVENTORY_COST_ACCOUNTING: self._repair_inventory_cost_accounting,
            CheckName.WITHDRAWAL_ACCOUNTS: self._repair_withdrawal_accounts,
            CheckName.GIFT_ORDER_ACCOUNTING: self._repair_gift_order_accounting,
            CheckName.AR_BALANCE: self._repair_ar_balance,
            CheckName.CUSTOMER_DEPOSITS: self._repair_customer_deposits,
        }

    @property
    def repair_names(self) -> tuple[str, ...]:
        return tuple(self._repairs)

    def is_repairable(self, check_name: str) -> bool:
        return check_name in self._repairs

    def run_repair(self, name: str) -> RepairResult:
        """
        Run one repair inside a savepoint.

        Raises:
            UnknownRepairError: no repair is registered under ``name``.
            RepairFailedError: the repair aborted and was rolled back.
        """
        repair = self._repairs.get(name)
        if repair is None:
            raise UnknownRepairError(str(name))

        result = RepairResult(repair_name=str(name))
        with LogContext.bind(repair_name=str(name), tenant_id=self.tenant_id):
            try:
                with self.session.begin_nested():
                    repair(result)
            except Exception as exc:
                logger.error(
                    "repair_failed",
                    extra={"repair_name": str(name), "error": f"{type(exc).__name__}: {exc}"},
                )
                raise RepairFailedError(str(name), str(exc)) from exc

            logger.info(
                "repair_completed",
                extra={
                    "repair_name": str(name),
                    "action_count": len(result.actions),
                    "actions": result.actions,
                },
            )
        return result

    # -----------------------------------------------------------------
    # Inventory
    # -----------------------------------------------------------------

    def _repair_duplicate_cogs_entries(self, result: RepairResult) -> None:
        groups = self._journal.duplicate_groups(
            (OrderEntryType.ORDER_IN_PREP, OrderEntryType.ORDER_DELIVERED)
        )
        for group in groups:
            for entry_id in group.extra_ids:
                self._ledger.delete_by_id(entry_id)
            result.add(
                f"Deleted {len(group.extra_ids)} duplicate {group.entry_type} "
                f"entries for '{group.reference}' (kept #{group.keep_id})"
            )

    def _dedupe_movements(self, result: RepairResult) -> None:
        groups = self._inventory.selector.duplicate_movement_groups()
        extra_ids = [movement_id for group in groups for movement_id in group.extra_ids]
        if not extra_ids:
            return
        deleted = self._inventory.delete_movements(extra_ids)
        result.add(f"Deleted {deleted} duplicate movements across {len(groups)} groups")
        self._repair_inventory_quantities(result)

    def _repair_duplicate_movements(self, result: RepairResult) -> None:
        self._dedupe_movements(result)

    def _repair_inventory_quantities(self, result: RepairResult) -> None:
        for correction in self._inventory.recompute_quantities():
            result.add(
                f"Item (ingredient #{correction.ingredient_id}, location #{correction.location_id}): "
                f"{correction.before} -> {correction.after}"
            )

    def _repair_movement_costs(self, result: RepairResult) -> None:
        fixed = self._inventory.backfill_movement_costs()
        if fixed:
            result.add(f"Backfilled cost on {fixed} movements")

    def _repair_inventory_cost_accounting(self, result: RepairResult) -> None:
        # Duplicate COGS entries are deleted first; drift left after that is expensed.
        self._repair_duplicate_cogs_entries(result)
        self._dedupe_movements(result)

        values = self._inventory.selector.value_by_type()
        tolerance = self._settings.cost_tolerance_cents
        drift_by_type: dict[InventoryType, int] = {}
        for itype in InventoryType:
            drift = values[itype] - self._ledger_selector.account_balance(itype.inventory_account)
            if abs(drift) >= tolerance:
                drift_by_type[itype] = drift

        spec = cost_adjustment_entry(self._clock.today(), drift_by_type)
        if spec is None:
            return
        entry = self._ledger.post(spec)
        for itype, drift in drift_by_type.items():
            result.add(
                f"Adjusted {itype.inventory_account.value} {itype.label} by {format_cents(drift)} "
                f"(entry #{entry.id})"
            )

    # -----------------------------------------------------------------
    # Journal
    # -----------------------------------------------------------------

    def _repair_withdrawal_accounts(self, result: RepairResult) -> None:
        lines = self._ledger_selector.withdrawal_lines_on_equity()
        for correction in self._corrections.reassign_lines(
            lines, AccountCode.OWNERS_DRAWINGS, WITHDRAWAL_REASON
        ):
            result.add(
                f"Line #{correction.line_id} of entry #{correction.entry_id}: "
                f"{correction.from_code} -> {correction.to_code}"
            )

    # -----------------------------------------------------------------
    # Orders
    # -----------------------------------------------------------------

    def _repair_gift_order_accounting(self, result: RepairResult) -> None:
        delivered = self._journal.order_ids_with(OrderEntryType.ORDER_DELIVERED)
        with_gift_line = set(
            self._ledger_selector.order_account_totals(AccountCode.SAMPLES_AND_GIFTS)
        )
        today = self._clock.today()
        for order in self._orders.list_orders((OrderStatus.DELIVERED,)):
            if not order.is_gift or order.order_id not in delivered:
                continue
            if order.order_id in with_gift_line:
                continue
            delivery = self._journal.find(
                order_reference(order.order_id), OrderEntryType.ORDER_DELIVERED
            )
            payments = self._journal.references_like(
                f"{order_reference(order.order_id)} payment #%",
                OrderEntryType.ORDER_PAYMENT,
            )
            payment_credits = [
                line
                for payment in payments
                for line in JournalSelector.line_specs(payment)
                if line.credit_cents > 0
            ]
            spec = gift_correction_entry(
                order.order_id,
                today,
                JournalSelector.line_specs(delivery) if delivery is not None else (),
                payment_credits,
            )
            if spec is None:
                continue
            entry = self._ledger.post(spec)
            result.add(f"Order #{order.order_id}: posted gift correction #{entry.id}")

    def _repair_ar_balance(self, result: RepairResult) -> None:
        balances = self._ledger_selector.order_account_balances(AccountCode.ACCOUNTS_RECEIVABLE)
        today = self._clock.today()
        for order in self._orders.list_orders((OrderStatus.DELIVERED,)):
            if order.is_gift:
                continue
            expected = max(order.total_cents - order.customer_paid_cents, 0)
            difference = expected - balances.get(order.order_id, 0)
            spec = ar_correction_entry(
                order.order_id,
                today,
                difference,
                offset_code=self._settings.ar_correction_offset,
            )
            if spec is None:
                continue
            entry = self._ledger.post(spec)
            result.add(
                f"Order #{order.order_id}: AR corrected by {format_cents(difference)} "
                f"(entry #{entry.id})"
            )

    def _repair_customer_deposits(self, result: RepairResult) -> None:
        balances = self._ledger_selector.order_account_balances(AccountCode.CUSTOMER_DEPOSITS)
        today = self._clock.today()
        for order in self._orders.list_orders((OrderStatus.DELIVERED,)):
            # a liability carries a credit (negative) balance
            remaining = -balances.get(order.order_id, 0)
            spec = deposit_transfer_entry(order.order_id, today, remaining)
            if spec is None:
                continue
            entry = self._ledger.post(spec)
            result.add(
                f"Order #{order.order_id}: transferred {format_cents(remaining)} of deposits to AR "
                f"(entry #{entry.id})"
            )
