"""
Inventory domain value objects.

Frozen dataclasses exchanged between the inventory service and its callers
(order lifecycle, reconciliation, repairs).  ORM rows live in ``orm.py``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ledger_kernel.domain.account_codes import InventoryType
from ledger_kernel.models.journal import JournalEntry
from ledger_modules.inventory.orm import InventoryItem, InventoryMovement


@dataclass(frozen=True)
class RecipeLine:
    """Quantity of one ingredient consumed per unit of product."""

    ingredient_code: str
    quantity: int


@dataclass(frozen=True)
class PurchaseLine:
    """One line of a shopping list."""

    ingredient_code: str
    quantity: int
    total_cost_cents: int


@dataclass(frozen=True)
class MovementResult:
    """Outcome of a single stock operation."""

    movement: InventoryMovement
    item: InventoryItem
    entry: JournalEntry | None = None

    @property
    def total_cost_cents(self) -> int:
        return self.movement.total_cost_cents


@dataclass(frozen=True)
class PurchaseListResult:
    movements: tuple[InventoryMovement, ...]
    entry: JournalEntry | None


@dataclass(frozen=True)
class OrderConsumption:
    """Stock an order consumed, valued at average cost per inventory type."""

    order_id: int
    movements: tuple[InventoryMovement, ...] = ()
    costs_by_type: dict[InventoryType, int] = field(default_factory=dict)

    @property
    def total_cost_cents(self) -> int:
        return sum(self.costs_by_type.values())


@dataclass(frozen=True)
class QuantityCorrection:
    """A cached quantity reset to the movement-derived quantity."""

    ingredient_id: int
    location_id: int
    before: int
    after: int


@dataclass(frozen=True)
class CountAdjustment:
    """Result of bringing one item to a physical count."""

    item: InventoryItem
    movement: InventoryMovement | None
    quantity_difference: int
    value_difference_cents: int
