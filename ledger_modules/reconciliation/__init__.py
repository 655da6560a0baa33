"""Account and inventory reconciliation."""

from ledger_modules.reconciliation.service import (
    InventoryReconciliation,
    ReconciliationService,
    StockCount,
)

__all__ = ["InventoryReconciliation", "ReconciliationService", "StockCount"]
