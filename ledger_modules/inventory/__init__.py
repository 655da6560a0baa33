"""
Inventory module: ingredients, locations, stock and weighted-average costing.
"""

from ledger_modules.inventory.models import (
    CountAdjustment,
    MovementResult,
    OrderConsumption,
    PurchaseLine,
    PurchaseListResult,
    QuantityCorrection,
    RecipeLine,
)
from ledger_modules.inventory.orm import (
    Ingredient,
    InventoryItem,
    InventoryMovement,
    Location,
    MovementType,
)
from ledger_modules.inventory.selector import InventorySelector
from ledger_modules.inventory.service import InventoryService

__all__ = [
    "CountAdjustment",
    "Ingredient",
    "InventoryItem",
    "InventoryMovement",
    "InventorySelector",
    "InventoryService",
    "Location",
    "MovementResult",
    "MovementType",
    "OrderConsumption",
    "PurchaseLine",
    "PurchaseListResult",
    "QuantityCorrection",
    "RecipeLine",
]
