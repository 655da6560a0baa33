"""
Module: ledger_engines
Responsibility:
    Pure calculation layer: posting rules, weighted-average inventory
    costing and the verification comparisons.

Architecture position:
    Engines -- zero I/O.  May import ledger_kernel.domain, ledger_kernel
    exceptions and enums.  MUST NOT import ledger_services or
    ledger_modules.

Invariants enforced:
    - Purity: engines never call ``date.today()``; dates are parameters.
    - Integer cents only; rounding is half-up and explicit.
    - Determinism: identical inputs always produce identical outputs.
"""
