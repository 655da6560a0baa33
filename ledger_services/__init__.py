"""Verification and repair services composed over the kernel and modules."""

from ledger_services.repair_service import RepairResult, RepairService
from ledger_services.verification_service import VerificationService

__all__ = ["RepairResult", "RepairService", "VerificationService"]
