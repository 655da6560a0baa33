"""
Verification domain types.

Pure frozen dataclasses and enums shared by LedgerVerificationChecker (pure
engine) and VerificationService / RepairService (imperative shell).

Architecture: ledger_engines/verification -- pure domain, zero I/O.

A check never raises on drift: it returns a CheckResult whose findings
describe each discrepancy.  ERROR results are reserved for checks that
could not run (an exception or a timeout).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from typing import Any


class CheckName(StrEnum):
    """Registered verification checks, in reporting order."""

    INVENTORY_QUANTITIES = "inventory_quantities"
    INVENTORY_COST_ACCOUNTING = "inventory_cost_accounting"
    MOVEMENT_COSTS = "movement_costs"
    DUPLICATE_MOVEMENTS = "duplicate_movements"
    WIP_BALANCE = "wip_balance"
    ORDER_WIP_CONSISTENCY = "order_wip_consistency"
    JOURNAL_ENTRIES_BALANCED = "journal_entries_balanced"
    DUPLICATE_COGS_ENTRIES = "duplicate_cogs_entries"
    WITHDRAWAL_ACCOUNTS = "withdrawal_accounts"
    GIFT_ORDER_ACCOUNTING = "gift_order_accounting"
    AR_BALANCE = "ar_balance"
    CUSTOMER_DEPOSITS = "customer_deposits"


class CheckSeverity(str, Enum):
    """Severity level of a verification finding."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class CheckStatus(str, Enum):
    """Overall status of one verification check."""

    PASSED = "passed"
    FAILED = "failed"       # At least one ERROR finding
    WARNING = "warning"     # Warnings only
    ERROR = "error"         # The check itself failed to run


@dataclass(frozen=True)
class Finding:
    """One discrepancy found by a check.

    ``code`` is machine-readable (e.g. ``QUANTITY_MISMATCH``); ``message``
    is the human-readable issue line with identifiers and formatted amounts.
    """

    code: str
    severity: CheckSeverity
    message: str
    details: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one named check.

    ``report`` carries the summary counters of a passing check (items
    checked, balances seen); ``findings`` the issues of a failing one.
    """

    name: str
    status: CheckStatus
    findings: tuple[Finding, ...] = ()
    report: Mapping[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def passed(cls, name: str, report: Mapping[str, Any] | None = None) -> CheckResult:
        return cls(name=name, status=CheckStatus.PASSED, report=dict(report or {}))

    @classmethod
    def from_findings(
        cls,
        name: str,
        findings: Iterable[Finding],
        report: Mapping[str, Any] | None = None,
    ) -> CheckResult:
        """Status derived from the highest-severity finding."""
        findings = tuple(findings)
        if any(f.severity == CheckSeverity.ERROR for f in findings):
            status = CheckStatus.FAILED
        elif any(f.severity == CheckSeverity.WARNING for f in findings):
            status = CheckStatus.WARNING
        else:
            status = CheckStatus.PASSED
        return cls(name=name, status=status, findings=findings, report=dict(report or {}))

    @classmethod
    def errored(cls, name: str, error: str) -> CheckResult:
        return cls(name=name, status=CheckStatus.ERROR, error=error)

    @property
    def ok(self) -> bool:
        return self.status == CheckStatus.PASSED

    @property
    def issues(self) -> tuple[str, ...]:
        """Human-readable issue lines (ERROR and WARNING findings)."""
        return tuple(
            f.message for f in self.findings if f.severity != CheckSeverity.INFO
        )

    @property
    def issue_count(self) -> int:
        return len(self.issues)


# =============================================================================
# Inputs (populated by the service, consumed by the engine)
# =============================================================================


@dataclass(frozen=True)
class StockSnapshot:
    """Cached quantity and cost of one InventoryItem."""

    ingredient_id: int
    location_id: int
    ingredient_name: str
    location_name: str
    quantity_on_hand: int
    avg_cost_cents: int = 0


@dataclass(frozen=True)
class MovementGroup:
    """Inventory movements sharing every identifying column, count > 1."""

    ingredient_id: int
    ingredient_name: str
    movement_type: str
    quantity: int
    movement_date: Any
    from_location_id: int | None
    to_location_id: int | None
    source_type: str | None
    source_id: int | None
    movement_ids: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.movement_ids)

    @property
    def keep_id(self) -> int:
        return self.movement_ids[0]

    @property
    def extra_ids(self) -> tuple[int, ...]:
        return self.movement_ids[1:]


@dataclass(frozen=True)
class InventoryValueComparison:
    """Subsidiary valuation vs GL balance of one inventory account."""

    label: str
    account_code: str
    subsidiary_cents: int
    gl_cents: int

    @property
    def drift(self) -> int:
        return self.subsidiary_cents - self.gl_cents


@dataclass(frozen=True)
class OrderReceivable:
    """Expected vs GL receivable of one delivered sale order."""

    order_id: int
    order_total_cents: int
    customer_paid_cents: int
    gl_cents: int

    @property
    def expected_cents(self) -> int:
        return max(self.order_total_cents - self.customer_paid_cents, 0)

    @property
    def difference(self) -> int:
        return self.expected_cents - self.gl_cents


@dataclass(frozen=True)
class OrderDeposit:
    """Expected vs GL Customer Deposits balance of one order."""

    order_id: int
    status: str
    delivered: bool
    deposits_paid_cents: int
    gl_cents: int

    @property
    def expected_cents(self) -> int:
        return 0 if self.delivered else self.deposits_paid_cents


@dataclass(frozen=True)
class EntryImbalance:
    """Debit and credit totals of one journal entry that does not balance."""

    entry_id: int
    entry_type: str
    reference: str | None
    debit_cents: int
    credit_cents: int


@dataclass(frozen=True)
class DuplicateEntries:
    """Journal entries sharing (reference, entry_type), lowest id first."""

    reference: str
    entry_type: str
    entry_ids: tuple[int, ...]

    @property
    def count(self) -> int:
        return len(self.entry_ids)


@dataclass(frozen=True)
class MisclassifiedLine:
    """A journal line posted to the wrong account."""

    line_id: int
    entry_id: int
    amount_cents: int
