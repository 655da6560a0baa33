"""
Inventory posting rules.

Purchases, returns, write-offs, manual usage and reconciliation
adjustments of stock.  Every rule returns an EntrySpec (or None when the
event carries no value) and never touches the database.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date

from ledger_kernel.domain.account_codes import AccountCode, InventoryType
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec


def purchase_entry(
    entry_date: date,
    inventory_type: InventoryType,
    total_cost_cents: int,
    reference: str,
    description: str,
    paid_from_code: str = AccountCode.CASH,
) -> EntrySpec:
    """
    Dr <inventory account of the type> / Cr <paid-from account>.

    Example:
        1000 units for 5000 cents paid in cash:
        Dr 1200 5000 / Cr 1000 5000.
    """
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.INVENTORY_PURCHASE,
        description=description,
        reference=reference,
        lines=(
            LineSpec.debit(
                inventory_type.inventory_account,
                total_cost_cents,
                f"{inventory_type.label} purchased",
            ),
            LineSpec.credit(paid_from_code, total_cost_cents, "Paid for inventory"),
        ),
    )


def multi_purchase_entry(
    entry_date: date,
    costs_by_type: Mapping[InventoryType, int],
    reference: str,
    description: str,
    paid_from_code: str = AccountCode.CASH,
) -> EntrySpec | None:
    """
    One entry for a shopping list spanning several inventory types.

    Types with zero cost produce no line; returns None when every cost is 0.
    """
    debits = [
        LineSpec.debit(itype.inventory_account, cents, f"{itype.label} purchased")
        for itype in InventoryType
        if (cents := costs_by_type.get(itype, 0)) > 0
    ]
    total = sum(line.amount_cents for line in debits)
    if total == 0:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.INVENTORY_PURCHASE,
        description=description,
        reference=reference,
        lines=(*debits, LineSpec.credit(paid_from_code, total, "Paid for inventory")),
    )


def return_entry(
    entry_date: date,
    inventory_type: InventoryType,
    total_cost_cents: int,
    reference: str,
    description: str,
    refunded_to_code: str = AccountCode.CASH,
) -> EntrySpec:
    """Stock returned to the supplier: Dr <refund account> / Cr inventory."""
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.INVENTORY_PURCHASE,
        description=description,
        reference=reference,
        lines=(
            LineSpec.debit(refunded_to_code, total_cost_cents, "Refund for returned inventory"),
            LineSpec.credit(
                inventory_type.inventory_account,
                total_cost_cents,
                f"{inventory_type.label} returned",
            ),
        ),
    )


def write_off_entry(
    entry_date: date,
    inventory_type: InventoryType,
    total_cost_cents: int,
    ingredient_name: str,
    location_name: str,
    note: str | None = None,
) -> EntrySpec | None:
    """Dr 6060 Inventory Waste / Cr inventory, valued at average cost."""
    if total_cost_cents <= 0:
        return None
    description = f"Write-off of {ingredient_name} at {location_name}"
    if note:
        description = f"{description}: {note}"
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.EXPENSE,
        description=description,
        reference=f"Write-off {ingredient_name} @ {location_name}",
        lines=(
            LineSpec.debit(AccountCode.INVENTORY_WASTE, total_cost_cents, "Inventory waste"),
            LineSpec.credit(
                inventory_type.inventory_account,
                total_cost_cents,
                f"{inventory_type.label} written off",
            ),
        ),
    )


def usage_entry(
    entry_date: date,
    inventory_type: InventoryType,
    total_cost_cents: int,
    ingredient_name: str,
    location_name: str,
) -> EntrySpec | None:
    """
    Manual consumption outside an order.

    Ingredients go to 5000 and packing to 5010; kitchen stock is an
    operating expense (6099), not cost of goods sold.
    """
    if total_cost_cents <= 0:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.EXPENSE,
        description=f"Manual usage of {ingredient_name} at {location_name}",
        reference=f"Usage {ingredient_name} @ {location_name}",
        lines=(
            LineSpec.debit(inventory_type.usage_account, total_cost_cents, f"{inventory_type.label} used"),
            LineSpec.credit(
                inventory_type.inventory_account,
                total_cost_cents,
                f"{inventory_type.label} consumed",
            ),
        ),
    )


def inventory_reconciliation_entry(
    entry_date: date,
    inventory_type: InventoryType,
    value_difference_cents: int,
    ingredient_name: str,
    location_name: str,
) -> EntrySpec | None:
    """
    Physical count adjustment.

    A positive difference (more stock than recorded) is Dr inventory /
    Cr 6060; a negative one is Dr 6060 / Cr inventory.
    """
    if value_difference_cents == 0:
        return None
    amount = abs(value_difference_cents)
    if value_difference_cents > 0:
        lines = (
            LineSpec.debit(inventory_type.inventory_account, amount, "Count surplus"),
            LineSpec.credit(AccountCode.INVENTORY_WASTE, amount, "Count surplus"),
        )
    else:
        lines = (
            LineSpec.debit(AccountCode.INVENTORY_WASTE, amount, "Count shortage"),
            LineSpec.credit(inventory_type.inventory_account, amount, "Count shortage"),
        )
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.RECONCILIATION,
        description=f"Inventory count of {ingredient_name} at {location_name}",
        reference=f"Inventory Reconciliation: {ingredient_name} @ {location_name}",
        lines=lines,
    )


def cost_adjustment_entry(
    entry_date: date,
    drift_by_type: Mapping[InventoryType, int],
) -> EntrySpec | None:
    """
    Bring each inventory GL account to the subsidiary valuation.

    ``drift_by_type`` maps type -> (subsidiary value - GL balance).  Positive
    drift debits the inventory account, negative drift credits it; the net
    goes to 6060 Inventory Waste & Shrinkage.  Returns None when every drift
    is zero.
    """
    lines = []
    net = 0
    for itype in InventoryType:
        drift = drift_by_type.get(itype, 0)
        if drift == 0:
            continue
        net += drift
        if drift > 0:
            lines.append(LineSpec.debit(itype.inventory_account, drift, f"{itype.label} revaluation"))
        else:
            lines.append(LineSpec.credit(itype.inventory_account, -drift, f"{itype.label} shrinkage"))
    if not lines:
        return None
    if net > 0:
        lines.append(LineSpec.credit(AccountCode.INVENTORY_WASTE, net, "Inventory cost adjustment"))
    elif net < 0:
        lines.append(LineSpec.debit(AccountCode.INVENTORY_WASTE, -net, "Inventory cost adjustment"))
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.OTHER,
        description="Adjust inventory accounts to subsidiary valuation",
        reference="Inventory Cost Adjustment",
        lines=tuple(lines),
    )
