"""Write services for the ledger kernel (flush only, never commit)."""

from ledger_kernel.services.chart_service import ChartService
from ledger_kernel.services.correction_service import CorrectionService, LineCorrection
from ledger_kernel.services.ledger_service import LedgerService, PostingResult, PostingStatus

__all__ = [
    "ChartService",
    "CorrectionService",
    "LineCorrection",
    "LedgerService",
    "PostingResult",
    "PostingStatus",
]
