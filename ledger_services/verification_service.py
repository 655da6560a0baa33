"""
ledger_services.verification_service -- Subsidiary-vs-ledger verification.

Responsibility:
    Gathers the facts each verification check compares (cached stock,
    movement history, per-order ledger balances, journal aggregates, order
    snapshots), hands them to the pure LedgerVerificationChecker and
    collects one CheckResult per check.

Architecture position:
    Services -- imperative shell over engines + kernel + modules.
    Composes InventorySelector, LedgerSelector, JournalSelector and the
    storefront's OrderBook with the pure verification engine.

Invariants enforced:
    - Read-only: no check writes, flushes or commits.
    - Checks run concurrently, each in its own session; a check that raises
      or exceeds the timeout becomes an ERROR result and never blocks or
      fails the others.
    - Drift is a FAILED result with findings, never an exception.

Failure modes:
    - RuntimeError when the engine has not been initialized (no session
      factory).  Everything else is captured per check.

Audit relevance:
    Every check logs ``verification_check_completed`` (or
    ``verification_check_failed``) with the check name bound in the log
    context, and the run logs a ``verification_run_completed`` summary.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, wait
from time import monotonic

from sqlalchemy.orm import Session, sessionmaker

from ledger_config.schema import VerificationSettings
from ledger_engines.verification import (
    CheckName,
    CheckResult,
    DuplicateEntries,
    EntryImbalance,
    InventoryValueComparison,
    LedgerVerificationChecker,
    MisclassifiedLine,
    OrderDeposit,
    OrderReceivable,
)
from ledger_kernel.db.engine import get_session_factory
from ledger_kernel.domain.account_codes import AccountCode, InventoryType
from ledger_kernel.domain.entry_types import EntryType, OrderEntryType
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.inventory.selector import InventorySelector
from ledger_modules.orders.models import OrderBook, OrderStatus

logger = get_logger("services.verification")

CheckFunction = Callable[[Session], CheckResult]


class VerificationService:
    """
    Runs the verification checks for one tenant.

    Contract:
        ``run_all_checks()`` returns a mapping check name -> CheckResult
        holding every registered check, in registration order.
        ``run_check(name)`` runs one check in a fresh session.

    Non-goals:
        - Does NOT repair anything (see RepairService).
        - Does NOT persist results; callers decide what to keep.
    """

    def __init__(
        self,
        tenant: TenantContext,
        order_book: OrderBook,
        settings: VerificationSettings | None = None,
        session_factory: sessionmaker[Session] | None = None,
        checker: LedgerVerificationChecker | None = None,
    ):
        self.tenant = tenant
        self._orders = order_book
        self._settings = settings or VerificationSettings()
        self._session_factory = session_factory or get_session_factory()
        self._checker = checker or LedgerVerificationChecker(
            cost_tolerance_cents=self._settings.cost_tolerance_cents
        )
        self._checks: dict[str, CheckFunction] = {
            CheckName.INVENTORY_QUANTITIES: self.check_inventory_quantities,
            CheckName.INVENTORY_COST_ACCOUNTING: self.check_inventory_cost_accounting,
            CheckName.MOVEMENT_COSTS: self.check_movement_costs,
            CheckName.DUPLICATE_MOVEMENTS: self.check_duplicate_movements,
            CheckName.WIP_BALANCE: self.check_wip_balance,
            CheckName.ORDER_WIP_CONSISTENCY: self.check_order_wip_consistency,
            CheckName.JOURNAL_ENTRIES_BALANCED: self.check_journal_entries_balanced,
            CheckName.DUPLICATE_COGS_ENTRIES: self.check_duplicate_cogs_entries,
            CheckName.WITHDRAWAL_ACCOUNTS: self.check_withdrawal_accounts,
            CheckName.GIFT_ORDER_ACCOUNTING: self.check_gift_order_accounting,
            CheckName.AR_BALANCE: self.check_ar_balance,
            CheckName.CUSTOMER_DEPOSITS: self.check_customer_deposits,
        }

    @property
    def check_names(self) -> tuple[str, ...]:
        return tuple(self._checks)

    # -----------------------------------------------------------------
    # Running
    # -----------------------------------------------------------------

    def run_all_checks(self, names: Iterable[str] | None = None) -> dict[str, CheckResult]:
        """
        Run checks concurrently and collect their results.

        A check still running when the timeout expires is reported as an
        ERROR result; its worker is abandoned, not awaited.
        """
        selected = list(names) if names is not None else list(self._checks)
        for name in selected:
            self._lookup(name)

        started = monotonic()
        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self._settings.max_workers, len(selected) or 1)),
            thread_name_prefix="verification",
        )
        try:
            futures = {name: executor.submit(self.run_check, name) for name in selected}
            wait(futures.values(), timeout=self._settings.timeout_seconds)
            results: dict[str, CheckResult] = {}
            for name, future in futures.items():
                if not future.done():
                    future.cancel()
                    message = f"Check timed out after {self._settings.timeout_seconds:g}s"
                    logger.error(
                        "verification_check_failed",
                        extra={"check_name": name, "tenant_id": self.tenant.tenant_id, "error": message},
                    )
                    results[name] = CheckResult.errored(name, message)
                else:
                    results[name] = future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "verification_run_completed",
            extra={
                "tenant_id": self.tenant.tenant_id,
                "checks": len(results),
                "failed": sorted(n for n, r in results.items() if not r.ok),
                "duration_ms": round((monotonic() - started) * 1000, 2),
            },
        )
        return results

    def run_check(self, name: str) -> CheckResult:
        """Run one check in its own session; exceptions become ERROR results."""
        check = self._lookup(name)
        with LogContext.bind(check_name=str(name), tenant_id=self.tenant.tenant_id):
            session = self._session_factory()
            try:
                result = check(session)
            except Exception as exc:
                logger.exception(
                    "verification_check_failed",
                    extra={"check_name": str(name), "error": str(exc)},
                )
                return CheckResult.errored(str(name), f"{type(exc).__name__}: {exc}")
            finally:
                session.rollback()
                session.close()
            logger.info(
                "verification_check_completed",
                extra={
                    "check_name": str(name),
                    "status": result.status.value,
                    "issues": result.issue_count,
                },
            )
            return result

    def _lookup(self, name: str) -> CheckFunction:
        try:
            return self._checks[name]
        except KeyError:
            raise ValueError(
                f"Unknown verification check '{name}'. Registered: {list(self._checks)}"
            ) from None

    # -----------------------------------------------------------------
    # Inventory
    # -----------------------------------------------------------------

    def check_inventory_quantities(self, session: Session) -> CheckResult:
        inventory = InventorySelector(session, self.tenant)
        return self._checker.check_inventory_quantities(
            inventory.stock_snapshots(), inventory.derived_quantities()
        )

    def inventory_value_comparisons(self, session: Session) -> list[InventoryValueComparison]:
        """Subsidiary valuation vs GL balance for each inventory account."""
        values = InventorySelector(session, self.tenant).value_by_type()
        ledger = LedgerSelector(session, self.tenant)
        return [
            InventoryValueComparison(
                label=f"{itype.label} ({itype.inventory_account.value})",
                account_code=itype.inventory_account.value,
                subsidiary_cents=values[itype],
                gl_cents=ledger.account_balance(itype.inventory_account),
            )
            for itype in InventoryType
        ]

    def check_inventory_cost_accounting(self, session: Session) -> CheckResult:
        return self._checker.check_inventory_cost(self.inventory_value_comparisons(session))

    def check_movement_costs(self, session: Session) -> CheckResult:
        inventory = InventorySelector(session, self.tenant)
        return self._checker.check_movement_costs(
            inventory.count_zero_cost_movements(), inventory.count_outflow_movements()
        )

    def check_duplicate_movements(self, session: Session) -> CheckResult:
        return self._checker.check_duplicate_movements(
            InventorySelector(session, self.tenant).duplicate_movement_groups()
        )

    # -----------------------------------------------------------------
    # Work in progress
    # -----------------------------------------------------------------

    def check_wip_balance(self, session: Session) -> CheckResult:
        ledger = LedgerSelector(session, self.tenant)
        journal = JournalSelector(session, self.tenant)
        debits = credits = 0
        for totals in ledger.account_totals(account_types=(AccountType.ASSET,)):
            if totals.code == AccountCode.WIP_INVENTORY:
                debits, credits = totals.debit_cents, totals.credit_cents
        in_prep = (
            journal.order_ids_with(OrderEntryType.ORDER_IN_PREP)
            - journal.order_ids_with(OrderEntryType.ORDER_DELIVERED)
            - journal.order_ids_with(OrderEntryType.ORDER_CANCELED)
        )
        return self._checker.check_wip_balance(debits, credits, len(in_prep))

    def check_order_wip_consistency(self, session: Session) -> CheckResult:
        ledger = LedgerSelector(session, self.tenant)
        journal = JournalSelector(session, self.tenant)
        prepped = journal.order_ids_with(OrderEntryType.ORDER_IN_PREP)
        delivered = journal.order_ids_with(OrderEntryType.ORDER_DELIVERED)
        prep_wip = ledger.order_account_totals(
            AccountCode.WIP_INVENTORY, (OrderEntryType.ORDER_IN_PREP,)
        )
        delivered_wip = ledger.order_account_totals(
            AccountCode.WIP_INVENTORY, (OrderEntryType.ORDER_DELIVERED,)
        )
        wip_by_order = {
            order_id: (prep_wip.get(order_id, (0, 0))[0], delivered_wip.get(order_id, (0, 0))[1])
            for order_id in prepped & delivered
        }
        return self._checker.check_order_wip(wip_by_order, len(prepped))

    # -----------------------------------------------------------------
    # Journal integrity
    # -----------------------------------------------------------------

    def check_journal_entries_balanced(self, session: Session) -> CheckResult:
        ledger = LedgerSelector(session, self.tenant)
        unbalanced = [
            EntryImbalance(
                entry_id=row.entry_id,
                entry_type=row.entry_type,
                reference=row.reference,
                debit_cents=row.debit_cents,
                credit_cents=row.credit_cents,
            )
            for row in ledger.unbalanced_entries()
        ]
        checked = ledger.count_entries(exclude_entry_types=(EntryType.YEAR_END_CLOSE,))
        return self._checker.check_entries_balanced(unbalanced, checked)

    def check_duplicate_cogs_entries(self, session: Session) -> CheckResult:
        groups = JournalSelector(session, self.tenant).duplicate_groups(
            (OrderEntryType.ORDER_IN_PREP, OrderEntryType.ORDER_DELIVERED)
        )
        return self._checker.check_duplicate_entries(
            [DuplicateEntries(g.reference, g.entry_type, g.entry_ids) for g in groups]
        )

    def check_withdrawal_accounts(self, session: Session) -> CheckResult:
        lines = LedgerSelector(session, self.tenant).withdrawal_lines_on_equity()
        return self._checker.check_withdrawal_accounts(
            [MisclassifiedLine(line.id, line.journal_entry_id, line.debit_cents) for line in lines]
        )

    # -----------------------------------------------------------------
    # Orders
    # -----------------------------------------------------------------

    def check_gift_order_accounting(self, session: Session) -> CheckResult:
        gift_orders = [
            order.order_id
            for order in self._orders.list_orders((OrderStatus.DELIVERED,))
            if order.is_gift
        ]
        ledger = LedgerSelector(session, self.tenant)
        journal = JournalSelector(session, self.tenant)
        return self._checker.check_gift_orders(
            gift_orders,
            journal.order_ids_with(OrderEntryType.ORDER_DELIVERED),
            set(ledger.order_account_totals(AccountCode.SAMPLES_AND_GIFTS)),
        )

    def order_receivables(self, session: Session) -> list[OrderReceivable]:
        """Expected vs GL receivable for every delivered sale order."""
        balances = LedgerSelector(session, self.tenant).order_account_balances(
            AccountCode.ACCOUNTS_RECEIVABLE
        )
        return [
            OrderReceivable(
                order_id=order.order_id,
                order_total_cents=order.total_cents,
                customer_paid_cents=order.customer_paid_cents,
                gl_cents=balances.get(order.order_id, 0),
            )
            for order in self._orders.list_orders((OrderStatus.DELIVERED,))
            if not order.is_gift
        ]

    def check_ar_balance(self, session: Session) -> CheckResult:
        return self._checker.check_ar_balance(self.order_receivables(session))

    def order_deposits(self, session: Session) -> list[OrderDeposit]:
        """Expected vs GL Customer Deposits for every order that took a deposit."""
        balances = LedgerSelector(session, self.tenant).order_account_balances(
            AccountCode.CUSTOMER_DEPOSITS
        )
        deposits = []
        for order in self._orders.list_orders():
            paid = order.deposits_paid_cents()
            if paid <= 0:
                continue
            deposits.append(
                OrderDeposit(
                    order_id=order.order_id,
                    status=OrderStatus(order.status).value,
                    delivered=order.is_delivered,
                    deposits_paid_cents=paid,
                    # liability: credits minus debits
                    gl_cents=-balances.get(order.order_id, 0),
                )
            )
        return deposits

    def check_customer_deposits(self, session: Session) -> CheckResult:
        return self._checker.check_customer_deposits(self.order_deposits(session))
