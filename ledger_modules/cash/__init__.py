"""Owner capital, transfers and expenses."""

from ledger_modules.cash.service import CashService

__all__ = ["CashService"]
