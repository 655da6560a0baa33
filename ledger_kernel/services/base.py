"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write service.  Services receive a SQLAlchemy ``Session`` and a
    ``TenantContext`` and use ``session.flush()`` -- never
    ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or rollback it.  Atomic sub-steps use savepoints
    (``session.begin_nested()``) so a failure leaves nothing behind while
    the outer transaction stays usable.
"""

from abc import ABC

from sqlalchemy.orm import Session

from ledger_kernel.domain.tenant import TenantContext


class BaseService(ABC):
    """
    Abstract base class for all ledger services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()`` on the caller's transaction.
    """

    def __init__(self, session: Session, tenant: TenantContext):
        self.session = session
        self.tenant = tenant

    @property
    def tenant_id(self) -> str:
        return self.tenant.tenant_id
