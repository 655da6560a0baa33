"""
Booking Lifecycle Service (``ledger_modules.bookings.service``).

Responsibility
--------------
Commission accounting for a travel agency whose customers pay providers
directly: advance and settlement payments, commission recognition when the
trip completes, and its reversal if a completed booking is canceled.

Architecture
------------
Layer: **Modules**.  Pure rules in ``ledger_engines.posting.bookings``,
persisted through ``LedgerService.post_once``.

Invariants
----------
- Revenue is recognized once, on completion, for the net commission only.
- A cancellation posts only after a completion entry exists; canceling
  earlier has no accounting effect.
- Entries are dated on the day they are recorded.
"""

from sqlalchemy.orm import Session

from ledger_engines.posting import (
    booking_canceled_entry,
    booking_completed_entry,
    booking_payment_entry,
)
from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.entry_types import BookingEntryType
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService, PostingResult
from ledger_kernel.utils.references import entity_reference
from ledger_modules.bookings.models import BookingPaymentSnapshot, BookingSnapshot, BookingStatus

logger = get_logger("modules.bookings.service")


class BookingLifecycleService(BaseService):

    def __init__(self, session: Session, tenant: TenantContext, clock: Clock | None = None):
        super().__init__(session, tenant)
        self._clock = clock or SystemClock()
        self._ledger = LedgerService(session, tenant)
        self._journal = JournalSelector(session, tenant)

    def handle_status_change(self, booking: BookingSnapshot) -> PostingResult:
        status = BookingStatus(booking.status)
        if status is BookingStatus.COMPLETED:
            return self.record_completed(booking)
        if status is BookingStatus.CANCELED:
            return self.record_canceled(booking)
        return PostingResult.skipped(f"No accounting for status {status.value}")

    def record_payment(self, payment: BookingPaymentSnapshot) -> PostingResult:
        """Dr cash / Cr 2200 for an advance, Cr 1100 for a settlement."""
        return self._ledger.post_once(
            booking_payment_entry(
                booking_id=payment.booking_id,
                payment_id=payment.payment_id,
                payment_date=payment.payment_date,
                amount_cents=payment.amount_cents,
                is_advance=payment.is_advance,
                cash_code=payment.cash_code,
            )
        )

    def record_completed(self, booking: BookingSnapshot) -> PostingResult:
        spec = booking_completed_entry(
            booking.booking_id,
            self._clock.today(),
            booking.commission_cents,
            booking.advances_cents,
        )
        if spec is None:
            return PostingResult.skipped(f"Booking #{booking.booking_id} has no commission")
        return self._ledger.post_once(spec)

    def record_canceled(self, booking: BookingSnapshot) -> PostingResult:
        """
        Reverse the commission recognized at completion.

        The reversed amount is the revenue actually posted, which may differ
        from the snapshot's commission if the booking was edited afterwards.
        """
        completed = self._journal.find(
            entity_reference("Booking", booking.booking_id, "completed"),
            BookingEntryType.BOOKING_COMPLETED,
        )
        if completed is None:
            logger.info(
                "booking_canceled_before_completion",
                extra={"booking_id": booking.booking_id},
            )
            return PostingResult.skipped(
                f"Booking #{booking.booking_id} was not completed; nothing to reverse"
            )
        recognized = sum(
            line.credit_cents for line in completed.lines if line.account.code == AccountCode.SALES
        )
        spec = booking_canceled_entry(booking.booking_id, self._clock.today(), recognized)
        if spec is None:
            return PostingResult.skipped(f"Booking #{booking.booking_id} recognized no revenue")
        return self._ledger.post_once(spec)
