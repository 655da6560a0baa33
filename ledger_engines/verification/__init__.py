"""Pure verification engine: check result types and comparisons."""

from ledger_engines.verification.checker import (
    DEFAULT_COST_TOLERANCE_CENTS,
    LedgerVerificationChecker,
)
from ledger_engines.verification.types import (
    CheckName,
    CheckResult,
    CheckSeverity,
    CheckStatus,
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

__all__ = [
    "CheckName",
    "CheckResult",
    "CheckSeverity",
    "CheckStatus",
    "DEFAULT_COST_TOLERANCE_CENTS",
    "DuplicateEntries",
    "EntryImbalance",
    "Finding",
    "InventoryValueComparison",
    "LedgerVerificationChecker",
    "MisclassifiedLine",
    "MovementGroup",
    "OrderDeposit",
    "OrderReceivable",
    "StockSnapshot",
]
