"""Travel booking snapshots supplied by the agency's booking workflow."""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from ledger_kernel.domain.account_codes import AccountCode


class BookingStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELED = "canceled"


@dataclass(frozen=True)
class BookingPaymentSnapshot:
    payment_id: int
    booking_id: int
    amount_cents: int
    payment_date: date
    is_advance: bool = False
    cash_code: str = AccountCode.CASH


@dataclass(frozen=True)
class BookingSnapshot:
    """
    A booking as the ledger sees it.

    ``commission_cents`` is the agency's net commission, the only revenue
    it ever recognizes for the booking.
    """

    booking_id: int
    status: BookingStatus
    commission_cents: int
    payments: tuple[BookingPaymentSnapshot, ...] = ()

    @property
    def advances_cents(self) -> int:
        return sum(p.amount_cents for p in self.payments if p.is_advance)
