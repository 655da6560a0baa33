"""Year-end close."""

from ledger_modules.closing.service import CloseResult, CloseStatus, YearEndCloseService

__all__ = ["CloseResult", "CloseStatus", "YearEndCloseService"]
