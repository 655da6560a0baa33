"""
Business modules built on the ledger kernel.

Each module owns one slice of the small-business domain (inventory, orders,
bookings, cash, reporting, closing, reconciliation).  Modules turn events
into EntrySpecs through ``ledger_engines.posting`` and write them through
``LedgerService``; none of them builds journal lines by hand.
"""
