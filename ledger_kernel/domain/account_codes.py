"""
AccountCode -- the one place symbolic account names map to chart codes.

Posting rules never spell a raw code string.  ``validate_chart`` checks the
seeded chart against this enum at startup so a typo or re-code fails fast
instead of silently targeting a phantom account at posting time.
"""

from enum import StrEnum
from typing import Iterable

from ledger_kernel.exceptions import ChartOfAccountsError


class AccountCode(StrEnum):
    """Codes the posting rules and the verification engine depend on."""

    CASH = "1000"
    ACCOUNTS_RECEIVABLE = "1100"
    INGREDIENTS_INVENTORY = "1200"
    PACKING_INVENTORY = "1210"
    WIP_INVENTORY = "1220"
    KITCHEN_INVENTORY = "1300"
    ACCOUNTS_PAYABLE = "2000"
    CUSTOMER_DEPOSITS = "2200"
    OWNERS_EQUITY = "3000"
    RETAINED_EARNINGS = "3050"
    OWNERS_DRAWINGS = "3100"
    SALES = "4000"
    SALES_DISCOUNTS = "4010"
    GIFT_CONTRIBUTIONS = "4100"
    INGREDIENTS_COGS = "5000"
    PACKAGING_COGS = "5010"
    INVENTORY_WASTE = "6060"
    SAMPLES_AND_GIFTS = "6070"
    OTHER_EXPENSES = "6099"


class InventoryType(StrEnum):
    """Inventory classes, each backed by its own GL account."""

    INGREDIENTS = "ingredients"
    PACKING = "packing"
    KITCHEN = "kitchen"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def inventory_account(self) -> AccountCode:
        return _INVENTORY_ACCOUNTS[self]

    @property
    def usage_account(self) -> AccountCode:
        """Account debited when stock is consumed outside an order."""
        return _USAGE_ACCOUNTS[self]

    @property
    def cogs_account(self) -> AccountCode:
        """COGS account used when an order is delivered (kitchen rolls into ingredients)."""
        if self is InventoryType.PACKING:
            return AccountCode.PACKAGING_COGS
        return AccountCode.INGREDIENTS_COGS


_INVENTORY_ACCOUNTS = {
    InventoryType.INGREDIENTS: AccountCode.INGREDIENTS_INVENTORY,
    InventoryType.PACKING: AccountCode.PACKING_INVENTORY,
    InventoryType.KITCHEN: AccountCode.KITCHEN_INVENTORY,
}

_USAGE_ACCOUNTS = {
    InventoryType.INGREDIENTS: AccountCode.INGREDIENTS_COGS,
    InventoryType.PACKING: AccountCode.PACKAGING_COGS,
    InventoryType.KITCHEN: AccountCode.OTHER_EXPENSES,
}


def inventory_type_for_account(code: str) -> InventoryType | None:
    for inventory_type, account_code in _INVENTORY_ACCOUNTS.items():
        if account_code == code:
            return inventory_type
    return None


def validate_chart(tenant_id: str, present_codes: Iterable[str]) -> None:
    """
    Raise ChartOfAccountsError if any AccountCode is missing from the chart.

    Args:
        tenant_id: Tenant whose chart is being checked (for the error).
        present_codes: Codes currently seeded for the tenant.
    """
    present = set(present_codes)
    missing = tuple(sorted(code.value for code in AccountCode if code.value not in present))
    if missing:
        raise ChartOfAccountsError(tenant_id, missing)
