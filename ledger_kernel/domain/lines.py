"""
Tagged journal lines and entry specifications.

Responsibility:
    ``LineSpec`` is the only way posting rules describe a line: a side tag
    plus one positive amount.  "Debit xor credit" is therefore a property of
    the type rather than a convention between two integer fields.
    ``EntrySpec`` bundles the header attributes with an ordered tuple of
    lines and is what every posting rule returns.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced (by ``check_lines``):
    - every amount is a positive integer number of cents,
    - sum(debits) == sum(credits),
    - the total is non-zero.
"""

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum

from ledger_kernel.exceptions import (
    InvalidLineError,
    UnbalancedEntryError,
    ZeroAmountEntryError,
)


class LineSide(str, Enum):
    """Debit or credit side of a journal line."""

    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> "LineSide":
        return LineSide.CREDIT if self is LineSide.DEBIT else LineSide.DEBIT


@dataclass(frozen=True)
class LineSpec:
    """One side of one account, for one positive amount of cents."""

    account_code: str
    side: LineSide
    amount_cents: int
    description: str | None = None

    @classmethod
    def debit(cls, account_code: str, amount_cents: int, description: str | None = None) -> "LineSpec":
        return cls(str(account_code), LineSide.DEBIT, amount_cents, description)

    @classmethod
    def credit(cls, account_code: str, amount_cents: int, description: str | None = None) -> "LineSpec":
        return cls(str(account_code), LineSide.CREDIT, amount_cents, description)

    @property
    def debit_cents(self) -> int:
        return self.amount_cents if self.side is LineSide.DEBIT else 0

    @property
    def credit_cents(self) -> int:
        return self.amount_cents if self.side is LineSide.CREDIT else 0

    def reversed(self, description: str | None = None) -> "LineSpec":
        """Same account and amount on the opposite side."""
        return replace(
            self,
            side=self.side.opposite,
            description=description if description is not None else self.description,
        )


@dataclass(frozen=True)
class EntrySpec:
    """Header attributes plus ordered lines for one journal entry."""

    entry_date: date
    entry_type: str
    description: str
    lines: tuple[LineSpec, ...]
    reference: str | None = None

    @property
    def total_debits(self) -> int:
        return sum(line.debit_cents for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit_cents for line in self.lines)

    @property
    def natural_key(self) -> tuple[str | None, str]:
        return (self.reference, str(self.entry_type))

    def with_lines(self, lines: tuple[LineSpec, ...] | list[LineSpec]) -> "EntrySpec":
        return replace(self, lines=tuple(lines))


@dataclass(frozen=True)
class EntryAttrs:
    """Header attribute overrides accepted by LedgerService.update()."""

    entry_date: date | None = None
    description: str | None = None
    reference: str | None = None


def check_lines(lines: tuple[LineSpec, ...] | list[LineSpec], reference: str | None = None) -> int:
    """
    Validate a line set and return its (balanced) total in cents.

    Raises:
        InvalidLineError: naming every line whose amount is not a positive int.
        ZeroAmountEntryError: no lines, or a zero total.
        UnbalancedEntryError: debits != credits.
    """
    bad = tuple(
        index
        for index, line in enumerate(lines)
        if not isinstance(line.amount_cents, int)
        or isinstance(line.amount_cents, bool)
        or line.amount_cents <= 0
        or not isinstance(line.side, LineSide)
    )
    if bad:
        raise InvalidLineError(bad, "each line needs exactly one positive integer side")

    debits = sum(line.debit_cents for line in lines)
    credits = sum(line.credit_cents for line in lines)
    if debits == 0 and credits == 0:
        raise ZeroAmountEntryError(reference)
    if debits != credits:
        raise UnbalancedEntryError(debits, credits)
    return debits


def drop_zero_lines(lines: list[LineSpec]) -> tuple[LineSpec, ...]:
    """Remove lines whose amount is zero (rules build optional lines this way)."""
    return tuple(line for line in lines if line.amount_cents != 0)
