"""
Ledger service - the single write path for journal entries.

The ledger service is responsible for:
- Validating an EntrySpec (required fields, allowed entry type, account
  resolution, one positive side per line, debits == credits > 0)
- Persisting the entry and all of its lines atomically
- Idempotent posting on (reference, entry_type)
- Replacing the lines of an existing entry (delete-then-insert)
- Deleting an entry with its lines

The ledger service does NOT:
- Decide which lines an event produces (that's ledger_engines.posting)
- Know anything about subsidiary state (inventory, orders, bookings)
- Commit: all work happens inside the caller's transaction, each write in
  its own savepoint.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from sqlalchemy.orm import Session

from ledger_kernel.domain.lines import EntryAttrs, EntrySpec, LineSpec, check_lines
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.exceptions import InvalidEntryTypeError, MissingFieldError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.utils.currency import format_cents

logger = get_logger("services.ledger")


class PostingStatus(str, Enum):
    """Outcome of an idempotent posting attempt."""

    POSTED = "posted"
    ALREADY_EXISTS = "already_exists"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PostingResult:
    """
    Result of LedgerService.post_once() and of the lifecycle services.

    ``entry`` is the newly posted entry, the pre-existing one, or None when
    the event produced nothing to post.
    """

    status: PostingStatus
    entry: JournalEntry | None = None
    message: str | None = None

    @classmethod
    def posted(cls, entry: JournalEntry) -> "PostingResult":
        return cls(status=PostingStatus.POSTED, entry=entry)

    @classmethod
    def already_exists(cls, entry: JournalEntry) -> "PostingResult":
        return cls(
            status=PostingStatus.ALREADY_EXISTS,
            entry=entry,
            message=f"Entry already exists with id={entry.id}",
        )

    @classmethod
    def skipped(cls, message: str) -> "PostingResult":
        return cls(status=PostingStatus.SKIPPED, message=message)

    @property
    def is_new(self) -> bool:
        return self.status is PostingStatus.POSTED

    @property
    def entry_id(self) -> int | None:
        return self.entry.id if self.entry is not None else None


class LedgerService(BaseService):
    """
    Persistence layer for journal entries.

    Contract:
        post() either writes the entry and every line or raises before
        anything is visible in the session.

    Guarantees:
        - Every persisted entry balances with a positive total.
        - Every persisted line has exactly one positive side.
        - post_once() never creates a second entry for a natural key.
    """

    def __init__(self, session: Session, tenant: TenantContext):
        super().__init__(session, tenant)
        self._accounts = AccountSelector(session, tenant)
        self._journal = JournalSelector(session, tenant)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(self, spec: EntrySpec) -> dict[str, Account]:
        if spec.entry_date is None:
            raise MissingFieldError("entry_date")
        if not spec.entry_type:
            raise MissingFieldError("entry_type")
        if not spec.description:
            raise MissingFieldError("description")
        if not self.tenant.allows(str(spec.entry_type)):
            raise InvalidEntryTypeError(str(spec.entry_type), self.tenant_id)
        return self._validate_lines(spec.lines, spec.reference)

    def _validate_lines(
        self, lines: Sequence[LineSpec], reference: str | None
    ) -> dict[str, Account]:
        accounts = self._accounts.resolve_codes(line.account_code for line in lines)
        check_lines(tuple(lines), reference)
        return accounts

    @staticmethod
    def _build_lines(
        lines: Sequence[LineSpec], accounts: dict[str, Account]
    ) -> list[JournalLine]:
        return [
            JournalLine(
                account_id=accounts[line.account_code].id,
                debit_cents=line.debit_cents,
                credit_cents=line.credit_cents,
                line_seq=seq,
                description=line.description,
            )
            for seq, line in enumerate(lines)
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def post(self, spec: EntrySpec) -> JournalEntry:
        """
        Validate and persist one journal entry.

        Raises:
            MissingFieldError: date, entry type or description absent.
            InvalidEntryTypeError: entry type not allowed for the tenant.
            AccountNotFoundError: a line names an unknown account code.
            InvalidLineError / ZeroAmountEntryError / UnbalancedEntryError.
        """
        accounts = self._validate(spec)

        entry = JournalEntry(
            tenant_id=self.tenant_id,
            entry_date=spec.entry_date,
            entry_type=str(spec.entry_type),
            reference=spec.reference,
            description=spec.description,
        )
        entry.lines = self._build_lines(spec.lines, accounts)

        with self.session.begin_nested():
            self.session.add(entry)
            self.session.flush()

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": entry.id,
                "entry_type": entry.entry_type,
                "reference": entry.reference,
                "entry_date": entry.entry_date,
                "line_count": len(entry.lines),
                "total": format_cents(spec.total_debits),
            },
        )
        return entry

    def post_once(self, spec: EntrySpec) -> PostingResult:
        """
        Post unless an entry with the same (reference, entry_type) exists.

        Returns:
            PostingResult with status POSTED and the new entry, or
            ALREADY_EXISTS and the pre-existing (lowest id) entry.
        """
        if spec.reference:
            existing = self._journal.find(spec.reference, spec.entry_type)
            if existing is not None:
                logger.info(
                    "journal_entry_already_exists",
                    extra={
                        "entry_id": existing.id,
                        "entry_type": existing.entry_type,
                        "reference": existing.reference,
                    },
                )
                return PostingResult.already_exists(existing)
        return PostingResult.posted(self.post(spec))

    def update(
        self,
        entry: JournalEntry,
        new_attrs: EntryAttrs | None,
        new_lines: Sequence[LineSpec],
    ) -> JournalEntry:
        """
        Replace an entry's header attributes and all of its lines.

        The new line set is validated exactly like post(); the old lines are
        deleted and the new ones inserted in one savepoint.
        """
        accounts = self._validate_lines(new_lines, entry.reference)
        before_total = entry.total_debits

        with self.session.begin_nested():
            if new_attrs is not None:
                if new_attrs.entry_date is not None:
                    entry.entry_date = new_attrs.entry_date
                if new_attrs.description is not None:
                    entry.description = new_attrs.description
                if new_attrs.reference is not None:
                    entry.reference = new_attrs.reference
            entry.lines.clear()
            self.session.flush()
            entry.lines.extend(self._build_lines(new_lines, accounts))
            self.session.flush()

        logger.info(
            "journal_entry_updated",
            extra={
                "entry_id": entry.id,
                "entry_type": entry.entry_type,
                "reference": entry.reference,
                "before_total": format_cents(before_total),
                "after_total": format_cents(entry.total_debits),
                "line_count": len(entry.lines),
            },
        )
        return entry

    def delete(self, entry: JournalEntry) -> None:
        """Remove an entry and all of its lines atomically."""
        entry_id, entry_type, reference = entry.id, entry.entry_type, entry.reference
        with self.session.begin_nested():
            self.session.delete(entry)
            self.session.flush()
        logger.info(
            "journal_entry_deleted",
            extra={
                "entry_id": entry_id,
                "entry_type": entry_type,
                "reference": reference,
            },
        )

    def delete_by_id(self, entry_id: int) -> None:
        self.delete(self._journal.get(entry_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(self, reference: str, entry_type: str) -> JournalEntry | None:
        return self._journal.find(reference, entry_type)
