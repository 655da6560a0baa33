"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only query access to journal entries by natural key,
    type and date, plus duplicate detection.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - Multi-entry results are ordered by id (insertion order).

Failure modes:
    - Returns None or empty list when nothing matches; only get() raises.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import func, select

from ledger_kernel.domain.lines import LineSpec
from ledger_kernel.exceptions import EntryNotFoundError
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.utils.references import ORDER_REFERENCE_LIKE, parse_order_id


@dataclass(frozen=True)
class DuplicateGroup:
    """Entries sharing one (reference, entry_type) key, lowest id first."""

    reference: str
    entry_type: str
    entry_ids: tuple[int, ...]

    @property
    def keep_id(self) -> int:
        return self.entry_ids[0]

    @property
    def extra_ids(self) -> tuple[int, ...]:
        return self.entry_ids[1:]


class JournalSelector(BaseSelector):
    """
    Selector for journal entry queries.

    Non-goals:
        - Does NOT compute balances; use LedgerSelector / AccountSelector.
    """

    def _base(self):
        return select(JournalEntry).where(JournalEntry.tenant_id == self.tenant_id)

    def get(self, entry_id: int) -> JournalEntry:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None or entry.tenant_id != self.tenant_id:
            raise EntryNotFoundError(entry_id)
        return entry

    def find(self, reference: str, entry_type: str) -> JournalEntry | None:
        """Lowest-id entry for the natural key, or None."""
        return (
            self.session.execute(
                self._base()
                .where(
                    JournalEntry.reference == reference,
                    JournalEntry.entry_type == str(entry_type),
                )
                .order_by(JournalEntry.id)
                .limit(1)
            )
            .scalars()
            .first()
        )

    def find_all(self, reference: str, entry_type: str | None = None) -> list[JournalEntry]:
        query = self._base().where(JournalEntry.reference == reference)
        if entry_type is not None:
            query = query.where(JournalEntry.entry_type == str(entry_type))
        return list(self.session.execute(query.order_by(JournalEntry.id)).scalars())

    def exists(self, reference: str, entry_type: str) -> bool:
        return self.find(reference, entry_type) is not None

    def list_by_type(
        self,
        entry_types: Iterable[str],
        start: date | None = None,
        end: date | None = None,
    ) -> list[JournalEntry]:
        query = self._base().where(
            JournalEntry.entry_type.in_([str(t) for t in entry_types])
        )
        if start is not None:
            query = query.where(JournalEntry.entry_date >= start)
        if end is not None:
            query = query.where(JournalEntry.entry_date <= end)
        return list(
            self.session.execute(
                query.order_by(JournalEntry.entry_date, JournalEntry.id)
            ).scalars()
        )

    def list_by_date_range(self, start: date, end: date) -> list[JournalEntry]:
        return list(
            self.session.execute(
                self._base()
                .where(JournalEntry.entry_date >= start, JournalEntry.entry_date <= end)
                .order_by(JournalEntry.entry_date, JournalEntry.id)
            ).scalars()
        )

    def references_like(self, pattern: str, entry_type: str | None = None) -> list[JournalEntry]:
        query = self._base().where(JournalEntry.reference.like(pattern))
        if entry_type is not None:
            query = query.where(JournalEntry.entry_type == str(entry_type))
        return list(self.session.execute(query.order_by(JournalEntry.id)).scalars())

    def duplicate_groups(self, entry_types: Iterable[str]) -> list[DuplicateGroup]:
        """
        Groups of entries sharing (reference, entry_type) with count > 1.

        Entries with a NULL reference are never considered duplicates.
        """
        types = [str(t) for t in entry_types]
        keys = self.session.execute(
            select(JournalEntry.reference, JournalEntry.entry_type)
            .where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.entry_type.in_(types),
                JournalEntry.reference.is_not(None),
            )
            .group_by(JournalEntry.reference, JournalEntry.entry_type)
            .having(func.count(JournalEntry.id) > 1)
            .order_by(JournalEntry.reference, JournalEntry.entry_type)
        ).all()

        groups = []
        for reference, entry_type in keys:
            ids = self.session.execute(
                select(JournalEntry.id)
                .where(
                    JournalEntry.tenant_id == self.tenant_id,
                    JournalEntry.reference == reference,
                    JournalEntry.entry_type == entry_type,
                )
                .order_by(JournalEntry.id)
            ).scalars()
            groups.append(DuplicateGroup(reference, entry_type, tuple(ids)))
        return groups

    def order_ids_with(self, entry_type: str) -> set[int]:
        """Ids of the orders having at least one entry of ``entry_type``."""
        references = self.session.execute(
            select(JournalEntry.reference)
            .where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.entry_type == str(entry_type),
                JournalEntry.reference.like(ORDER_REFERENCE_LIKE),
            )
            .distinct()
        ).scalars()
        order_ids = {parse_order_id(reference) for reference in references}
        order_ids.discard(None)
        return order_ids

    def last_of_type(self, entry_type: str) -> JournalEntry | None:
        return (
            self.session.execute(
                self._base()
                .where(JournalEntry.entry_type == str(entry_type))
                .order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())
                .limit(1)
            )
            .scalars()
            .first()
        )

    @staticmethod
    def line_specs(entry: JournalEntry) -> tuple[LineSpec, ...]:
        """The entry's persisted lines as LineSpecs, in line order."""
        return tuple(
            LineSpec(line.account.code, line.side, line.amount_cents, line.description)
            for line in entry.lines
        )

    def count(self) -> int:
        return self.session.execute(
            select(func.count(JournalEntry.id)).where(
                JournalEntry.tenant_id == self.tenant_id
            )
        ).scalar_one()
