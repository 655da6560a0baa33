"""Commission accounting for the travel agency tenant."""

from ledger_modules.bookings.models import BookingPaymentSnapshot, BookingSnapshot, BookingStatus
from ledger_modules.bookings.service import BookingLifecycleService

__all__ = [
    "BookingLifecycleService",
    "BookingPaymentSnapshot",
    "BookingSnapshot",
    "BookingStatus",
]
