"""
LedgerVerificationChecker -- Pure engine for subsidiary-vs-ledger comparisons.

Compares inventory quantities and valuations, per-order receivables and
deposits, WIP flows and journal integrity facts gathered by the
VerificationService, and turns every discrepancy into a Finding.

Architecture: ledger_engines -- pure calculation, zero I/O, zero DB access.
All inputs are frozen dataclasses populated by the service layer.

Each method returns a CheckResult named after the check it implements.
Drift is reported, never raised.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence

from ledger_engines.tracer import traced_engine
from ledger_engines.verification.types import (
    CheckName,
    CheckResult,
    CheckSeverity,
    DuplicateEntries,
    EntryImbalance,
    Finding,
    InventoryValueComparison,
    MisclassifiedLine,
    MovementGroup,
    OrderDeposit,
    OrderReceivable,
    StockSnapshot,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.utils.currency import format_cents

logger = get_logger("engines.verification.checker")

DEFAULT_COST_TOLERANCE_CENTS = 100


class LedgerVerificationChecker:
    """Pure engine for ledger verification.

    Usage:
        checker = LedgerVerificationChecker(cost_tolerance_cents=100)
        result = checker.check_inventory_quantities(items, derived)
    """

    def __init__(self, cost_tolerance_cents: int = DEFAULT_COST_TOLERANCE_CENTS):
        self.cost_tolerance_cents = cost_tolerance_cents

    # -----------------------------------------------------------------
    # Inventory
    # -----------------------------------------------------------------

    @traced_engine("ledger_verification", "1.0")
    def check_inventory_quantities(
        self,
        items: Sequence[StockSnapshot],
        derived: Mapping[tuple[int, int], int],
    ) -> CheckResult:
        """Cached quantity of every item vs the quantity derived from movements."""
        findings = []
        for item in items:
            calculated = derived.get((item.ingredient_id, item.location_id), 0)
            if item.quantity_on_hand != calculated:
                findings.append(Finding(
                    code="QUANTITY_MISMATCH",
                    severity=CheckSeverity.ERROR,
                    message=(
                        f"Inventory mismatch: {item.ingredient_name} @ {item.location_name} - "
                        f"System: {item.quantity_on_hand}, Calculated: {calculated}"
                    ),
                    details={
                        "ingredient_id": item.ingredient_id,
                        "location_id": item.location_id,
                        "system": item.quantity_on_hand,
                        "calculated": calculated,
                    },
                ))
        return CheckResult.from_findings(
            CheckName.INVENTORY_QUANTITIES, findings, {"checked_items": len(items)}
        )

    @traced_engine("ledger_verification", "1.0")
    def check_inventory_cost(
        self,
        comparisons: Sequence[InventoryValueComparison],
    ) -> CheckResult:
        """Subsidiary valuation vs GL per inventory account, within the tolerance."""
        findings = []
        for comparison in comparisons:
            if abs(comparison.drift) >= self.cost_tolerance_cents:
                findings.append(Finding(
                    code="INVENTORY_VALUE_MISMATCH",
                    severity=CheckSeverity.ERROR,
                    message=(
                        f"{comparison.label} mismatch: "
                        f"Items={format_cents(comparison.subsidiary_cents)}, "
                        f"Account={format_cents(comparison.gl_cents)}, "
                        f"Difference={format_cents(abs(comparison.drift))}"
                    ),
                    details={
                        "account_code": comparison.account_code,
                        "drift_cents": comparison.drift,
                    },
                ))
        return CheckResult.from_findings(
            CheckName.INVENTORY_COST_ACCOUNTING,
            findings,
            {"inventory_value": sum(c.subsidiary_cents for c in comparisons)},
        )

    def check_movement_costs(self, zero_cost_count: int, total_checked: int) -> CheckResult:
        if zero_cost_count == 0:
            return CheckResult.passed(
                CheckName.MOVEMENT_COSTS, {"checked": total_checked, "zero_cost": 0}
            )
        return CheckResult.from_findings(
            CheckName.MOVEMENT_COSTS,
            [Finding(
                code="ZERO_COST_MOVEMENTS",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Found {zero_cost_count} of {total_checked} usage/write-off "
                    f"movement(s) with $0 cost that may need backfilling"
                ),
                details={"zero_cost": zero_cost_count, "checked": total_checked},
            )],
        )

    def check_duplicate_movements(self, groups: Sequence[MovementGroup]) -> CheckResult:
        findings = [
            Finding(
                code="DUPLICATE_MOVEMENT",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Duplicate {group.movement_type}: {group.ingredient_name} "
                    f"qty={group.quantity} on {group.movement_date} "
                    f"({group.count} copies, source: {group.source_type}/{group.source_id})"
                ),
                details={"movement_ids": list(group.movement_ids)},
            )
            for group in groups
        ]
        return CheckResult.from_findings(
            CheckName.DUPLICATE_MOVEMENTS, findings, {"duplicate_groups": len(groups)}
        )

    # -----------------------------------------------------------------
    # Work in progress
    # -----------------------------------------------------------------

    def check_wip_balance(self, debits: int, credits: int, orders_in_prep: int) -> CheckResult:
        """Informational: always passes with the WIP figures."""
        return CheckResult.passed(
            CheckName.WIP_BALANCE,
            {
                "wip_balance": debits - credits,
                "total_debits": debits,
                "total_credits": credits,
                "orders_in_prep": orders_in_prep,
            },
        )

    @traced_engine("ledger_verification", "1.0")
    def check_order_wip(
        self,
        wip_by_order: Mapping[int, tuple[int, int]],
        checked_orders: int,
    ) -> CheckResult:
        """
        WIP debited at prep must equal WIP relieved at delivery.

        Args:
            wip_by_order: delivered order id -> (in-prep WIP debit,
                delivered WIP credit).
            checked_orders: orders that went through prep.
        """
        findings = [
            Finding(
                code="WIP_NOT_RELIEVED",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Order #{order_id}: WIP debit ({format_cents(debit)}) "
                    f"!= credit ({format_cents(credit)})"
                ),
                details={"order_id": order_id, "debit": debit, "credit": credit},
            )
            for order_id, (debit, credit) in sorted(wip_by_order.items())
            if debit != credit
        ]
        return CheckResult.from_findings(
            CheckName.ORDER_WIP_CONSISTENCY, findings, {"checked_orders": checked_orders}
        )

    # -----------------------------------------------------------------
    # Journal integrity
    # -----------------------------------------------------------------

    def check_entries_balanced(
        self,
        unbalanced: Sequence[EntryImbalance],
        checked_entries: int,
    ) -> CheckResult:
        findings = [
            Finding(
                code="UNBALANCED_ENTRY",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Journal Entry #{entry.entry_id} ({entry.entry_type}): "
                    f"Debits={format_cents(entry.debit_cents)}, "
                    f"Credits={format_cents(entry.credit_cents)}"
                ),
                details={"entry_id": entry.entry_id},
            )
            for entry in unbalanced
        ]
        return CheckResult.from_findings(
            CheckName.JOURNAL_ENTRIES_BALANCED,
            findings,
            {"checked_entries": checked_entries, "unbalanced": len(unbalanced)},
        )

    def check_duplicate_entries(self, groups: Sequence[DuplicateEntries]) -> CheckResult:
        findings = [
            Finding(
                code="DUPLICATE_ENTRY",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Duplicate {group.entry_type}: {group.reference} has "
                    f"{group.count} entries (expected 1)"
                ),
                details={"entry_ids": list(group.entry_ids)},
            )
            for group in groups
        ]
        return CheckResult.from_findings(
            CheckName.DUPLICATE_COGS_ENTRIES, findings, {"duplicate_groups": len(groups)}
        )

    def check_withdrawal_accounts(self, lines: Sequence[MisclassifiedLine]) -> CheckResult:
        if not lines:
            return CheckResult.passed(CheckName.WITHDRAWAL_ACCOUNTS, {"issues": 0})
        total = sum(line.amount_cents for line in lines)
        return CheckResult.from_findings(
            CheckName.WITHDRAWAL_ACCOUNTS,
            [Finding(
                code="WITHDRAWAL_DEBITS_EQUITY",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Found {len(lines)} withdrawal(s) incorrectly debiting Owner's Equity "
                    f"(3000) instead of Owner's Drawings (3100). Total: {format_cents(total)}"
                ),
                details={"line_ids": [line.line_id for line in lines]},
            )],
        )

    # -----------------------------------------------------------------
    # Orders
    # -----------------------------------------------------------------

    def check_gift_orders(
        self,
        gift_order_ids: Sequence[int],
        orders_with_entries: Collection[int],
        orders_with_gift_line: Collection[int],
    ) -> CheckResult:
        """Delivered gift orders with ledger entries but no Samples & Gifts line."""
        affected = [
            order_id
            for order_id in gift_order_ids
            if order_id in orders_with_entries and order_id not in orders_with_gift_line
        ]
        if not affected:
            return CheckResult.passed(
                CheckName.GIFT_ORDER_ACCOUNTING, {"checked": len(gift_order_ids), "issues": 0}
            )
        numbers = ", #".join(str(order_id) for order_id in affected)
        return CheckResult.from_findings(
            CheckName.GIFT_ORDER_ACCOUNTING,
            [Finding(
                code="GIFT_SALE_ACCOUNTING",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Found {len(affected)} delivered gift order(s) with sale-style "
                    f"accounting instead of gift accounting: Order(s) #{numbers}"
                ),
                details={"order_ids": affected},
            )],
            {"checked": len(gift_order_ids)},
        )

    @traced_engine("ledger_verification", "1.0")
    def check_ar_balance(self, receivables: Sequence[OrderReceivable]) -> CheckResult:
        findings = [
            Finding(
                code="AR_MISMATCH",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Order #{r.order_id}: Expected AR={format_cents(r.expected_cents)}, "
                    f"GL AR={format_cents(r.gl_cents)}, Difference={format_cents(r.difference)}"
                ),
                details={"order_id": r.order_id, "difference_cents": r.difference},
            )
            for r in receivables
            if r.difference != 0
        ]
        return CheckResult.from_findings(
            CheckName.AR_BALANCE, findings, {"checked_orders": len(receivables)}
        )

    @traced_engine("ledger_verification", "1.0")
    def check_customer_deposits(self, deposits: Sequence[OrderDeposit]) -> CheckResult:
        findings = [
            Finding(
                code="DEPOSIT_MISMATCH",
                severity=CheckSeverity.ERROR,
                message=(
                    f"Order #{d.order_id} ({d.status}): Expected deposits "
                    f"balance={format_cents(d.expected_cents)}, GL shows={format_cents(d.gl_cents)}"
                ),
                details={"order_id": d.order_id, "gl_cents": d.gl_cents},
            )
            for d in deposits
            if d.gl_cents != d.expected_cents
        ]
        return CheckResult.from_findings(
            CheckName.CUSTOMER_DEPOSITS, findings, {"checked_orders": len(deposits)}
        )
