"""
Owner capital posting rules.

Contributions credit Owner's Equity (3000).  Withdrawals always debit
Owner's Drawings (3100), never 3000: drawings are closed into retained
earnings at year end while contributed capital is not.
"""

from __future__ import annotations

from datetime import date

from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec


def investment_entry(
    entry_date: date,
    amount_cents: int,
    cash_code: str = AccountCode.CASH,
    partner_name: str | None = None,
) -> EntrySpec:
    """Dr <cash> / Cr 3000 Owner's Equity."""
    who = partner_name or "partner"
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.INVESTMENT,
        description=f"Capital contribution from {who}",
        reference="Partner investment",
        lines=(
            LineSpec.debit(cash_code, amount_cents, "Cash contributed"),
            LineSpec.credit(AccountCode.OWNERS_EQUITY, amount_cents, f"Investment by {who}"),
        ),
    )


def withdrawal_entry(
    entry_date: date,
    amount_cents: int,
    cash_code: str = AccountCode.CASH,
    partner_name: str | None = None,
) -> EntrySpec:
    """Dr 3100 Owner's Drawings / Cr <cash>."""
    who = partner_name or "partner"
    return EntrySpec(
        entry_date=entry_date,
        entry_type=EntryType.WITHDRAWAL,
        description=f"Withdrawal by {who}",
        reference="Partner withdrawal",
        lines=(
            LineSpec.debit(AccountCode.OWNERS_DRAWINGS, amount_cents, f"Drawings by {who}"),
            LineSpec.credit(cash_code, amount_cents, "Cash withdrawn"),
        ),
    )
