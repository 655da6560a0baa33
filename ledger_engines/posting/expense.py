"""Operating expense posting rule."""

from __future__ import annotations

from datetime import date

from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec


def expense_reference(expense_id: int) -> str:
    return f"Expense #{expense_id}"


def expense_entry(
    expense_id: int,
    entry_date: date,
    expense_code: str,
    paid_from_code: str,
    amount_cents: int,
    description: str,
) -> EntrySpec:
    """Dr <expense account> / Cr <paid-from account> (cash or a payable)."""
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.EXPENSE,
        description=description,
        reference=expense_reference(expense_id),
        lines=(
            LineSpec.debit(expense_code, amount_cents, description),
            LineSpec.credit(paid_from_code, amount_cents, f"Paid: {description}"),
        ),
    )
