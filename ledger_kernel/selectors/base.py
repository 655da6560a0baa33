"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors MUST NOT add, delete, flush or commit.
    - Tenant scoping: every query filters on the TenantContext the selector
      was built with.
    - Session ownership: the caller owns the session and its transaction.

Audit relevance:
    Selectors derive every balance from JournalLines at query time; there
    are no stored balances anywhere in the ledger.
"""

from abc import ABC

from sqlalchemy.orm import Session

from ledger_kernel.domain.tenant import TenantContext


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session and a TenantContext from the caller,
        perform read-only queries, and return DTOs or ORM rows.
    """

    def __init__(self, session: Session, tenant: TenantContext):
        self.session = session
        self.tenant = tenant

    @property
    def tenant_id(self) -> str:
        return self.tenant.tenant_id
