"""Pure domain vocabulary: clock, tenant context, account codes, entry types, lines."""
