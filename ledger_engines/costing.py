"""
ledger_engines.costing -- Weighted moving-average inventory costing.

Responsibility:
    Value inventory inflows and outflows and maintain the per-item average
    unit cost.  The inventory service applies these results to
    InventoryItem rows and movement records.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Integer cents throughout; averages are rounded half-up to the cent.
    - Outflows (usage, write-off, transfer out) never change the average of
      the location they leave.
    - An item with nothing on hand before an inflow takes the inflow's
      unit cost as its new average.

Failure modes:
    - ValueError for a non-positive inflow quantity.

Audit relevance:
    The average cost drives both the COGS moved to WIP and the subsidiary
    valuation that the inventory_cost_accounting check compares to the GL.
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_engines.tracer import traced_engine
from ledger_kernel.utils.currency import divide_round_half_up


@dataclass(frozen=True)
class ItemValuation:
    """Quantity on hand and average unit cost of one ingredient at one location."""

    quantity: int
    avg_cost_cents: int

    @property
    def value_cents(self) -> int:
        return self.quantity * self.avg_cost_cents


def unit_cost_from_total(quantity: int, total_cost_cents: int) -> int:
    """Per-unit cost of a purchase line, rounded half-up.  0 for no quantity."""
    if quantity <= 0:
        return 0
    return divide_round_half_up(total_cost_cents, quantity)


def movement_total(quantity: int, unit_cost_cents: int) -> int:
    return quantity * unit_cost_cents


@traced_engine("weighted_average_cost", "1.0", fingerprint_fields=("added_qty", "added_cost_cents"))
def weighted_average_cost(
    old_qty: int,
    old_avg_cents: int,
    added_qty: int,
    added_cost_cents: int,
) -> int:
    """
    New average unit cost after receiving ``added_qty`` for ``added_cost_cents``.

    Example:
        1000 units at 5 cents, then 1000 more for 7000 cents:
        (1000*5 + 7000) / 2000 = 6 cents.

    Raises:
        ValueError: ``added_qty`` is not positive.
    """
    if added_qty <= 0:
        raise ValueError(f"inflow quantity must be positive, got {added_qty}")
    if old_qty <= 0:
        return divide_round_half_up(added_cost_cents, added_qty)
    new_qty = old_qty + added_qty
    return divide_round_half_up(old_qty * old_avg_cents + added_cost_cents, new_qty)


def receive(current: ItemValuation, quantity: int, total_cost_cents: int) -> ItemValuation:
    """Apply an inflow (purchase or transfer in)."""
    return ItemValuation(
        quantity=current.quantity + quantity,
        avg_cost_cents=weighted_average_cost(
            current.quantity, current.avg_cost_cents, quantity, total_cost_cents
        ),
    )


def issue(current: ItemValuation, quantity: int) -> tuple[ItemValuation, int]:
    """
    Apply an outflow valued at the current average.

    Returns the new valuation and the cost of the issued quantity.  The
    average is kept while stock remains and reset to zero once the item is
    empty.
    """
    cost = movement_total(quantity, current.avg_cost_cents)
    remaining = current.quantity - quantity
    avg = current.avg_cost_cents if remaining > 0 else 0
    return ItemValuation(quantity=remaining, avg_cost_cents=avg), cost


def effective_unit_cost(avg_cost_cents: int | None, fallback_cost_cents: int | None) -> int:
    """
    Unit cost used to value a movement that carries none.

    The item's average cost wins; the ingredient's catalogue cost is the
    fallback; 0 when neither is known.
    """
    if avg_cost_cents and avg_cost_cents > 0:
        return avg_cost_cents
    if fallback_cost_cents and fallback_cost_cents > 0:
        return fallback_cost_cents
    return 0
