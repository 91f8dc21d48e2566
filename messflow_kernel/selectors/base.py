"""
Module: messflow_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
Architecture position: Kernel > Selectors.  MUST NOT import from services/
    or outer layers.  Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(), delete(),
      commit(), or flush().
    - Tenant scoping: every query filters on the owner id resolved from the
      TenantContext.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session

from messflow_kernel.domain.tenant import TenantContext


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session and a TenantContext from the caller,
        perform read-only queries, and return DTOs or computed results.
    """

    def __init__(self, session: Session, tenant: TenantContext):
        self.session = session
        self._tenant = tenant

    def _owner_id(self, operation: str) -> UUID:
        return self._tenant.require_owner_id(operation)
