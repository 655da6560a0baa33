"""Money transfers between two balance-sheet accounts."""

from __future__ import annotations

from datetime import date

from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec
from ledger_kernel.exceptions import InvalidTransferError
from ledger_kernel.models.account import AccountType

TRANSFERABLE_TYPES = frozenset({AccountType.ASSET, AccountType.LIABILITY})


def transfer_entry(
    transfer_id: int,
    entry_date: date,
    from_code: str,
    from_type: AccountType,
    to_code: str,
    to_type: AccountType,
    amount_cents: int,
    note: str | None = None,
) -> EntrySpec:
    """
    Dr destination / Cr source.

    Raises:
        InvalidTransferError: same account on both sides, or either account
            is not an asset or liability.
    """
    if str(from_code) == str(to_code):
        raise InvalidTransferError(from_code, to_code, "source and destination are the same account")
    for code, account_type in ((from_code, from_type), (to_code, to_type)):
        if AccountType(account_type) not in TRANSFERABLE_TYPES:
            raise InvalidTransferError(
                from_code, to_code, f"account {code} is {AccountType(account_type).value}, not asset or liability"
            )

    description = f"Transfer {from_code} -> {to_code}"
    if note:
        description = f"{description}: {note}"
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.INTERNAL_TRANSFER,
        description=description,
        reference=f"Transfer #{transfer_id}",
        lines=(
            LineSpec.debit(to_code, amount_cents, f"Transfer in from {from_code}"),
            LineSpec.credit(from_code, amount_cents, f"Transfer out to {to_code}"),
        ),
    )
