"""
Journal entry types.

The core set is shared by every tenant.  Domain extensions (order lifecycle,
booking lifecycle) are granted per tenant through TenantContext; their
names are fixed here so posting rules and verification queries agree.
"""

from enum import StrEnum


class EntryType(StrEnum):
    """Entry types every tenant may post."""

    SALE = "sale"
    EXPENSE = "expense"
    INVESTMENT = "investment"
    WITHDRAWAL = "withdrawal"
    INVENTORY_PURCHASE = "inventory_purchase"
    INTERNAL_TRANSFER = "internal_transfer"
    RECONCILIATION = "reconciliation"
    YEAR_END_CLOSE = "year_end_close"
    DEPRECIATION = "depreciation"
    OTHER = "other"


class OrderEntryType(StrEnum):
    """Order lifecycle extension ("orders" pack)."""

    ORDER_IN_PREP = "order_in_prep"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELED = "order_canceled"
    ORDER_PAYMENT = "order_payment"


class BookingEntryType(StrEnum):
    """Travel booking lifecycle extension ("bookings" pack)."""

    BOOKING_PAYMENT = "booking_payment"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_CANCELED = "booking_canceled"


CORE_ENTRY_TYPES: frozenset[str] = frozenset(t.value for t in EntryType)

EXTENSION_PACKS: dict[str, frozenset[str]] = {
    "orders": frozenset(t.value for t in OrderEntryType),
    "bookings": frozenset(t.value for t in BookingEntryType),
}
