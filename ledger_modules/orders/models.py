"""
Order snapshots and the OrderBook protocol.

Orders are owned by the storefront, not by the ledger.  The lifecycle
service and the verification engine see them only as frozen snapshots
supplied through an ``OrderBook``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Protocol

from ledger_kernel.domain.account_codes import AccountCode
from ledger_modules.inventory.models import RecipeLine


class OrderStatus(str, Enum):
    NEW = "new_order"
    IN_PREP = "in_prep"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELED = "canceled"


@dataclass(frozen=True)
class PaymentSnapshot:
    """
    One customer payment on an order.

    ``customer_amount_cents`` is the customer's share when the payment is
    split with a partner; None means the whole amount is the customer's.
    """

    payment_id: int
    order_id: int
    amount_cents: int
    payment_date: date
    is_deposit: bool = False
    paid_to_code: str = AccountCode.CASH
    customer_amount_cents: int | None = None
    partner_amount_cents: int = 0
    partner_payable_code: str | None = None
    partner_name: str | None = None

    @property
    def customer_cents(self) -> int:
        if self.customer_amount_cents is not None:
            return self.customer_amount_cents
        return self.amount_cents


@dataclass(frozen=True)
class OrderSnapshot:
    order_id: int
    status: OrderStatus
    gross_product_cents: int
    discount_cents: int = 0
    shipping_cents: int = 0
    is_gift: bool = False
    delivery_date: date | None = None
    actual_delivery_date: date | None = None
    customer_name: str | None = None
    prep_location_code: str = "KITCHEN"
    recipe: tuple[RecipeLine, ...] = ()
    payments: tuple[PaymentSnapshot, ...] = field(default_factory=tuple)

    @property
    def total_cents(self) -> int:
        """What the customer owes: product - discount + shipping."""
        return self.gross_product_cents - self.discount_cents + self.shipping_cents

    @property
    def is_delivered(self) -> bool:
        return self.status is OrderStatus.DELIVERED

    @property
    def customer_paid_cents(self) -> int:
        return sum(payment.customer_cents for payment in self.payments)

    def deposits_paid_cents(self, on_or_before: date | None = None) -> int:
        """Customer share of deposit payments, optionally up to a date."""
        return sum(
            payment.customer_cents
            for payment in self.payments
            if payment.is_deposit
            and (on_or_before is None or payment.payment_date <= on_or_before)
        )


class OrderBook(Protocol):
    """Read access to the storefront's orders."""

    def get_order(self, order_id: int) -> OrderSnapshot | None: ...

    def list_orders(self, statuses: Iterable[OrderStatus] | None = None) -> list[OrderSnapshot]: ...


class InMemoryOrderBook:
    """OrderBook over a dict, for embedding and tests."""

    def __init__(self, orders: Iterable[OrderSnapshot] = ()):
        self._orders: dict[int, OrderSnapshot] = {}
        for order in orders:
            self.put(order)

    def put(self, order: OrderSnapshot) -> OrderSnapshot:
        self._orders[order.order_id] = order
        return order

    def get_order(self, order_id: int) -> OrderSnapshot | None:
        return self._orders.get(order_id)

    def list_orders(self, statuses: Iterable[OrderStatus] | None = None) -> list[OrderSnapshot]:
        wanted = None if statuses is None else {OrderStatus(s) for s in statuses}
        return [
            order
            for order_id, order in sorted(self._orders.items())
            if wanted is None or order.status in wanted
        ]
