"""
Posting rules: pure functions from a business event to an EntrySpec.

Rules never read the database or the clock; the calling service supplies
dates, amounts and prior ledger facts (for example the in-prep lines of an
order) and posts the result through LedgerService.
"""

from ledger_engines.posting.adjustments import (
    account_reconciliation_entry,
    ar_correction_entry,
    deposit_transfer_entry,
    gift_correction_entry,
)
from ledger_engines.posting.bookings import (
    booking_canceled_entry,
    booking_completed_entry,
    booking_payment_entry,
)
from ledger_engines.posting.closing import ClosingBalance, year_end_close_entry
from ledger_engines.posting.expense import expense_entry
from ledger_engines.posting.inventory import (
    cost_adjustment_entry,
    inventory_reconciliation_entry,
    multi_purchase_entry,
    purchase_entry,
    return_entry,
    usage_entry,
    write_off_entry,
)
from ledger_engines.posting.orders import (
    canceled_entry,
    cogs_split,
    gift_delivered_entry,
    in_prep_entry,
    payment_entry,
    sale_delivered_entry,
)
from ledger_engines.posting.owner import investment_entry, withdrawal_entry
from ledger_engines.posting.transfer import transfer_entry

__all__ = [
    "ClosingBalance",
    "account_reconciliation_entry",
    "ar_correction_entry",
    "booking_canceled_entry",
    "booking_completed_entry",
    "booking_payment_entry",
    "canceled_entry",
    "cogs_split",
    "cost_adjustment_entry",
    "deposit_transfer_entry",
    "expense_entry",
    "gift_correction_entry",
    "gift_delivered_entry",
    "in_prep_entry",
    "inventory_reconciliation_entry",
    "investment_entry",
    "multi_purchase_entry",
    "payment_entry",
    "purchase_entry",
    "return_entry",
    "sale_delivered_entry",
    "transfer_entry",
    "usage_entry",
    "withdrawal_entry",
    "write_off_entry",
    "year_end_close_entry",
]
