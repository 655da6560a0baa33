"""
CorrectionService -- the one audited in-place edit path for journal lines.

Only the account of a line may change.  Amounts, sides and the entry header
are untouched, so the entry's balance cannot move; the service still
re-checks it and refuses to operate on an entry that is already broken.
Every reassignment logs the before and after values.
"""

from dataclasses import dataclass
from typing import Iterable

from ledger_kernel.domain.lines import LineSide
from ledger_kernel.exceptions import CorrectionError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.correction")


@dataclass(frozen=True)
class LineCorrection:
    """Audit record of one reassignment."""

    line_id: int
    entry_id: int
    from_code: str
    to_code: str
    side: LineSide
    amount_cents: int
    reason: str


class CorrectionService(BaseService):

    def reassign_line_account(
        self, line: JournalLine, to_code: str, reason: str
    ) -> LineCorrection:
        """
        Move ``line`` to the account ``to_code``.

        Raises:
            AccountNotFoundError: ``to_code`` is not in the chart.
            CorrectionError: empty reason, a line from another tenant, a
                no-op reassignment, or an entry that does not balance.
        """
        if not reason:
            raise CorrectionError(line.id, "a reason is required")
        entry = line.entry
        if entry.tenant_id != self.tenant_id:
            raise CorrectionError(line.id, "line belongs to another tenant")
        if not entry.is_balanced:
            raise CorrectionError(line.id, f"entry #{entry.id} does not balance")

        target = AccountSelector(self.session, self.tenant).get_by_code(to_code)
        source = line.account
        if source.id == target.id:
            raise CorrectionError(line.id, f"line already posts to {target.code}")

        with self.session.begin_nested():
            line.account_id = target.id
            line.account = target
            self.session.flush()

        correction = LineCorrection(
            line_id=line.id,
            entry_id=entry.id,
            from_code=source.code,
            to_code=target.code,
            side=line.side,
            amount_cents=line.amount_cents,
            reason=reason,
        )
        logger.info(
            "line_account_reassigned",
            extra={
                "line_id": line.id,
                "entry_id": entry.id,
                "before_account": source.label,
                "after_account": target.label,
                "side": correction.side,
                "amount_cents": correction.amount_cents,
                "reason": reason,
            },
        )
        return correction

    def reassign_lines(
        self, lines: Iterable[JournalLine], to_code: str, reason: str
    ) -> list[LineCorrection]:
        return [self.reassign_line_account(line, to_code, reason) for line in lines]
