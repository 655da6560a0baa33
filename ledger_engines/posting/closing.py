"""
Year-end close.

Zeroes every revenue and expense account for the period and Owner's
Drawings, with a single balancing line on Retained Earnings (3050) equal to
net income minus drawings.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.lines import EntrySpec, LineSpec


@dataclass(frozen=True)
class ClosingBalance:
    """Period activity of one temporary account (debits minus credits)."""

    code: str
    name: str
    raw_cents: int


def close_reference(close_date: date) -> str:
    return f"Year-End Close {close_date.year}"


def net_income_from(balances: Sequence[ClosingBalance]) -> int:
    """Revenue minus expenses: the negated raw sum of the temporary accounts."""
    return -sum(balance.raw_cents for balance in balances)


def year_end_close_entry(
    close_date: date,
    temporary_balances: Sequence[ClosingBalance],
    drawings_cents: int,
) -> EntrySpec | None:
    """
    Build the closing entry, or None when there is nothing to close.

    Args:
        close_date: Last day of the closed period (also the entry date).
        temporary_balances: Revenue and expense accounts with period activity.
        drawings_cents: Debit balance of Owner's Drawings for the period.
    """
    net_income = net_income_from(temporary_balances)
    if net_income == 0 and drawings_cents == 0:
        return None

    lines: list[LineSpec] = []
    for balance in temporary_balances:
        if balance.raw_cents > 0:
            lines.append(LineSpec.credit(balance.code, balance.raw_cents, f"Close {balance.name} to retained earnings"))
        elif balance.raw_cents < 0:
            lines.append(LineSpec.debit(balance.code, -balance.raw_cents, f"Close {balance.name} to retained earnings"))

    if drawings_cents > 0:
        lines.append(
            LineSpec.credit(AccountCode.OWNERS_DRAWINGS, drawings_cents, "Close owner's drawings to retained earnings")
        )
    elif drawings_cents < 0:
        lines.append(
            LineSpec.debit(AccountCode.OWNERS_DRAWINGS, -drawings_cents, "Close owner's drawings to retained earnings")
        )

    amount_to_close = net_income - drawings_cents
    if amount_to_close > 0:
        lines.append(
            LineSpec.credit(AccountCode.RETAINED_EARNINGS, amount_to_close, "Net income closed to retained earnings")
        )
    elif amount_to_close < 0:
        lines.append(
            LineSpec.debit(AccountCode.RETAINED_EARNINGS, -amount_to_close, "Net loss closed to retained earnings")
        )

    return EntrySpec(
        entry_date=close_date,
        entry_type=EntryType.YEAR_END_CLOSE,
        description=(
            f"Close {close_date.year} net income and owner's drawings to retained earnings"
        ),
        reference=close_reference(close_date),
        lines=tuple(lines),
    )
