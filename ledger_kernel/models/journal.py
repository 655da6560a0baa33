"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    single source of truth for every balance and statement.
Architecture position: Kernel > Models.  May import from db/base.py,
    models/account.py and the pure line vocabulary in domain/lines.py.

Invariants enforced:
    - Exactly one side of a line is positive and the other is zero
      (ck_journal_line_one_side).  The tagged LineSpec makes this structural
      at the API; the CHECK constraint backs it at the schema.
    - Lines belong to exactly one entry and are deleted with it.
    - Debits == credits per entry is enforced by LedgerService before the
      INSERT; the verification engine re-checks it by aggregation.

Failure modes:
    - IntegrityError if a line with zero or two sides reaches the database.

Audit relevance:
    Entries are immutable after creation except through LedgerService.update
    (delete-then-insert of lines), LedgerService.delete, and the audited
    CorrectionService line reassignment.
"""

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.domain.lines import LineSide

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """
    A dated, balanced financial transaction.

    Contract:
        (reference, entry_type) is the natural key used for idempotent
        posting.  It is deliberately NOT unique at the schema level: the
        verification engine must be able to see and remove duplicates that
        older code paths created.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_journal_entry_natural_key", "tenant_id", "reference", "entry_type"),
        Index("idx_journal_entry_tenant_date", "tenant_id", "entry_date"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    entry_type: Mapped[str] = mapped_column(String(50), nullable=False)

    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_seq",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry #{self.id} {self.entry_type} {self.reference!r}>"

    @property
    def total_debits(self) -> int:
        return sum(line.debit_cents for line in self.lines)

    @property
    def total_credits(self) -> int:
        return sum(line.credit_cents for line in self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits and self.total_debits > 0


class JournalLine(TrackedBase):
    """One debit or credit posting to a single account within an entry."""

    __tablename__ = "journal_lines"

    __table_args__ = (
        CheckConstraint(
            "debit_cents >= 0 AND credit_cents >= 0 AND "
            "((debit_cents > 0 AND credit_cents = 0) OR "
            "(debit_cents = 0 AND credit_cents > 0))",
            name="ck_journal_line_one_side",
        ),
        Index("idx_journal_line_entry", "journal_entry_id"),
        Index("idx_journal_line_account", "account_id"),
    )

    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit_cents: Mapped[int] = mapped_column(default=0, nullable=False)

    credit_cents: Mapped[int] = mapped_column(default=0, nullable=False)

    line_seq: Mapped[int] = mapped_column(default=0, nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return (
            f"<JournalLine #{self.id} entry={self.journal_entry_id} "
            f"{self.side.value} {self.amount_cents}>"
        )

    @property
    def side(self) -> LineSide:
        return LineSide.DEBIT if self.debit_cents > 0 else LineSide.CREDIT

    @property
    def amount_cents(self) -> int:
        return self.debit_cents or self.credit_cents

    @property
    def is_debit(self) -> bool:
        return self.debit_cents > 0
