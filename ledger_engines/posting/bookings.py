"""
Travel booking lifecycle posting rules (commission-only agency).

Customers pay providers directly; the agency earns a net commission that is
recognized when the trip completes.

    advance payment      Dr cash / Cr 2200 Customer Deposits
    settlement payment   Dr cash / Cr 1100 Accounts Receivable
    completed            Dr 1100 (commission - advances)
                         Dr 2200 (advances applied)
                         Cr 4000 commission
    canceled             (only once completed) Dr 4000 / Cr 1100
"""

from __future__ import annotations

from datetime import date

from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.entry_types import BookingEntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec
from ledger_kernel.utils.references import entity_reference


def booking_payment_reference(booking_id: int, payment_id: int) -> str:
    return entity_reference("Booking", booking_id, f"payment #{payment_id}")


def booking_payment_entry(
    booking_id: int,
    payment_id: int,
    payment_date: date,
    amount_cents: int,
    is_advance: bool,
    cash_code: str = AccountCode.CASH,
) -> EntrySpec:
    credit_code = AccountCode.CUSTOMER_DEPOSITS if is_advance else AccountCode.ACCOUNTS_RECEIVABLE
    label = "advance" if is_advance else "settlement"
    credit_note = "Advance commission" if is_advance else "Commission receivable"
    return EntrySpec(
        entry_date=payment_date,
        entry_type=BookingEntryType.BOOKING_PAYMENT,
        description=f"Payment on booking #{booking_id} ({label})",
        reference=booking_payment_reference(booking_id, payment_id),
        lines=(
            LineSpec.debit(cash_code, amount_cents, f"Cash received for booking #{booking_id}"),
            LineSpec.credit(credit_code, amount_cents, f"{credit_note} for booking #{booking_id}"),
        ),
    )


def booking_completed_entry(
    booking_id: int,
    entry_date: date,
    commission_cents: int,
    advances_cents: int,
) -> EntrySpec | None:
    """
    Recognize the commission and absorb advances already received.

    Advances beyond the commission stay in 2200 (only the commission amount
    can be cleared), so the entry always balances.  None for a zero
    commission.
    """
    if commission_cents <= 0:
        return None
    applied = min(max(advances_cents, 0), commission_cents)
    receivable = commission_cents - applied
    lines = []
    if receivable > 0:
        lines.append(
            LineSpec.debit(AccountCode.ACCOUNTS_RECEIVABLE, receivable, f"Commission receivable for booking #{booking_id}")
        )
    if applied > 0:
        lines.append(
            LineSpec.debit(AccountCode.CUSTOMER_DEPOSITS, applied, f"Clear advance commission for booking #{booking_id}")
        )
    lines.append(LineSpec.credit(AccountCode.SALES, commission_cents, f"Commission revenue for booking #{booking_id}"))
    return EntrySpec(
        entry_date=entry_date,
        entry_type=BookingEntryType.BOOKING_COMPLETED,
        description=f"Booking #{booking_id} completed",
        reference=entity_reference("Booking", booking_id, "completed"),
        lines=tuple(lines),
    )


def booking_canceled_entry(booking_id: int, entry_date: date, commission_cents: int) -> EntrySpec | None:
    """Reverse recognized commission.  None for a zero commission."""
    if commission_cents <= 0:
        return None
    return EntrySpec(
        entry_date=entry_date,
        entry_type=BookingEntryType.BOOKING_CANCELED,
        description=f"Booking #{booking_id} canceled (reverse revenue)",
        reference=entity_reference("Booking", booking_id, "canceled"),
        lines=(
            LineSpec.debit(AccountCode.SALES, commission_cents, f"Reverse commission revenue for booking #{booking_id}"),
            LineSpec.credit(
                AccountCode.ACCOUNTS_RECEIVABLE,
                commission_cents,
                f"Reverse commission receivable for booking #{booking_id}",
            ),
        ),
    )
