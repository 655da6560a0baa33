"""Financial statements derived from the journal."""

from ledger_modules.reporting.models import (
    BalanceSheet,
    CashFlowBreakdown,
    CashFlowStatement,
    EquitySummary,
    FinancialAnalysis,
    MonthlyProfitAndLoss,
    ProfitAndLoss,
    StatementLine,
)
from ledger_modules.reporting.service import ReportingService

__all__ = [
    "BalanceSheet",
    "CashFlowBreakdown",
    "CashFlowStatement",
    "EquitySummary",
    "FinancialAnalysis",
    "MonthlyProfitAndLoss",
    "ProfitAndLoss",
    "ReportingService",
    "StatementLine",
]
