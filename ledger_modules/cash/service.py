"""
Cash Service (``ledger_modules.cash.service``).

Responsibility
--------------
Owner contributions and withdrawals, transfers between balance-sheet
accounts, and operating expenses.

Invariants
----------
- Withdrawals debit Owner's Drawings (3100), never Owner's Equity (3000).
- Transfers move money only between asset and liability accounts.
- Expenses are keyed by ``Expense #<id>``: recording is idempotent and an
  edit replaces the entry's lines in place.
"""

from datetime import date

from sqlalchemy.orm import Session

from ledger_engines.posting import expense_entry, investment_entry, transfer_entry, withdrawal_entry
from ledger_engines.posting.expense import expense_reference
from ledger_kernel.domain.account_codes import AccountCode
from ledger_kernel.domain.entry_types import EntryType
from ledger_kernel.domain.lines import EntryAttrs
from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.ledger_service import LedgerService, PostingResult

logger = get_logger("modules.cash.service")


class CashService(BaseService):
    """
    Money in and out of the business outside the order and booking flows.

    Non-goals
    ---------
    - Does NOT track expense documents or receipts; only their postings.
    """

    def __init__(self, session: Session, tenant: TenantContext):
        super().__init__(session, tenant)
        self._ledger = LedgerService(session, tenant)
        self._journal = JournalSelector(session, tenant)
        self._accounts = AccountSelector(session, tenant)

    # ------------------------------------------------------------------
    # Owner capital
    # ------------------------------------------------------------------

    def record_investment(
        self,
        entry_date: date,
        amount_cents: int,
        cash_code: str = AccountCode.CASH,
        partner_name: str | None = None,
    ) -> JournalEntry:
        """Dr cash / Cr 3000.  Every contribution is its own entry."""
        return self._ledger.post(investment_entry(entry_date, amount_cents, cash_code, partner_name))

    def record_withdrawal(
        self,
        entry_date: date,
        amount_cents: int,
        cash_code: str = AccountCode.CASH,
        partner_name: str | None = None,
    ) -> JournalEntry:
        """Dr 3100 / Cr cash."""
        return self._ledger.post(withdrawal_entry(entry_date, amount_cents, cash_code, partner_name))

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer(
        self,
        transfer_id: int,
        entry_date: date,
        from_code: str,
        to_code: str,
        amount_cents: int,
        note: str | None = None,
    ) -> PostingResult:
        """
        Move money between two asset or liability accounts.

        Raises:
            AccountNotFoundError: either code is not in the chart.
            InvalidTransferError: same account, or an account that is not an
                asset or liability.
        """
        source = self._accounts.get_by_code(from_code)
        destination = self._accounts.get_by_code(to_code)
        spec = transfer_entry(
            transfer_id=transfer_id,
            entry_date=entry_date,
            from_code=source.code,
            from_type=source.type,
            to_code=destination.code,
            to_type=destination.type,
            amount_cents=amount_cents,
            note=note,
        )
        return self._ledger.post_once(spec)

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def record_expense(
        self,
        expense_id: int,
        entry_date: date,
        expense_code: str,
        amount_cents: int,
        description: str,
        paid_from_code: str = AccountCode.CASH,
    ) -> PostingResult:
        return self._ledger.post_once(
            expense_entry(expense_id, entry_date, expense_code, paid_from_code, amount_cents, description)
        )

    def update_expense(
        self,
        expense_id: int,
        entry_date: date,
        expense_code: str,
        amount_cents: int,
        description: str,
        paid_from_code: str = AccountCode.CASH,
    ) -> JournalEntry:
        """Replace the expense entry's lines, or post it if it was never recorded."""
        spec = expense_entry(expense_id, entry_date, expense_code, paid_from_code, amount_cents, description)
        existing = self._journal.find(spec.reference, EntryType.EXPENSE)
        if existing is None:
            logger.info("expense_entry_missing_on_update", extra={"expense_id": expense_id})
            return self._ledger.post(spec)
        return self._ledger.update(
            existing,
            EntryAttrs(entry_date=entry_date, description=description),
            spec.lines,
        )

    def delete_expense(self, expense_id: int) -> bool:
        entry = self._journal.find(expense_reference(expense_id), EntryType.EXPENSE)
        if entry is None:
            return False
        self._ledger.delete(entry)
        return True
