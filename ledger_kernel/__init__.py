"""
Ledger Kernel

A double-entry bookkeeping core for multi-tenant small-business books:
- Chart of accounts with normal-balance metadata
- Balanced, atomic multi-line posting
- Idempotent posting on (reference, entry_type)
- Audited in-place corrections
"""

__version__ = "0.1.0"
