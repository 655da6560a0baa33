"""Order lifecycle accounting for the storefront tenant."""

from ledger_modules.inventory.models import RecipeLine
from ledger_modules.orders.models import (
    InMemoryOrderBook,
    OrderBook,
    OrderSnapshot,
    OrderStatus,
    PaymentSnapshot,
)
from ledger_modules.orders.service import OrderLifecycleService

__all__ = [
    "InMemoryOrderBook",
    "OrderBook",
    "OrderLifecycleService",
    "OrderSnapshot",
    "OrderStatus",
    "PaymentSnapshot",
    "RecipeLine",
]
