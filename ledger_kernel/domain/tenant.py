"""
TenantContext -- explicit tenant routing for every kernel call.

Every selector and service receives a TenantContext at construction.  There
is no process-wide "active tenant": two services for different tenants can
share a session without seeing each other's rows.
"""

from dataclasses import dataclass, field
from typing import Iterable

from ledger_kernel.domain.entry_types import CORE_ENTRY_TYPES


@dataclass(frozen=True)
class TenantContext:
    """
    Identity and capabilities of one tenant's books.

    Attributes:
        tenant_id: Scopes every row the kernel reads or writes.
        entry_types: Allowed entry types (core set plus tenant extensions).
    """

    tenant_id: str
    entry_types: frozenset[str] = field(default=CORE_ENTRY_TYPES)

    def __post_init__(self):
        if not self.tenant_id:
            raise ValueError("tenant_id must be non-empty")

    @classmethod
    def with_extensions(cls, tenant_id: str, extensions: Iterable[str]) -> "TenantContext":
        return cls(tenant_id=tenant_id, entry_types=CORE_ENTRY_TYPES | frozenset(extensions))

    def allows(self, entry_type: str) -> bool:
        return entry_type in self.entry_types
