"""
TenantContext -- injectable source of the current owner id.

Responsibility:
    Supplies the ``owner_id`` that scopes every read and write.  Services
    receive a TenantContext the same way they receive a Clock and call
    ``require_owner_id()`` at the top of every public operation; the engine
    never sees unscoped data.

Architecture position:
    Kernel > Domain.  Zero I/O.  Authentication itself is external; this
    module only carries its result.

Failure modes:
    - UnauthenticatedError from ``require_owner_id()`` when no owner is bound.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator
from uuid import UUID

from messflow_kernel.exceptions import UnauthenticatedError
from messflow_kernel.logging_config import LogContext


class TenantContext(ABC):
    """Abstract tenant context."""

    @abstractmethod
    def current_owner_id(self) -> UUID | None:
        """Return the bound owner id, or None when unauthenticated."""
        ...

    def require_owner_id(self, operation: str | None = None) -> UUID:
        """
        Return the bound owner id.

        Raises:
            UnauthenticatedError: If no owner is bound.
        """
        owner_id = self.current_owner_id()
        if owner_id is None:
            raise UnauthenticatedError(operation)
        return owner_id


class StaticTenantContext(TenantContext):
    """Tenant context fixed at construction (CLI runs, tests)."""

    def __init__(self, owner_id: UUID | None):
        self._owner_id = owner_id

    def current_owner_id(self) -> UUID | None:
        return self._owner_id


_current_owner: ContextVar[UUID | None] = ContextVar(
    "messflow_current_owner", default=None
)


class ScopedTenantContext(TenantContext):
    """
    Request-scoped tenant context backed by a ContextVar.

    Bind an owner for the duration of a request with ``tenant_scope()``.
    Safe across threads and asyncio tasks.
    """

    def current_owner_id(self) -> UUID | None:
        return _current_owner.get()


@contextmanager
def tenant_scope(owner_id: UUID) -> Iterator[UUID]:
    """
    Bind ``owner_id`` for the current context and restore on exit.

    Also binds ``owner_id`` into the structured log context.

    Usage:
        with tenant_scope(session_user.id):
            ledger.record_transaction(...)
    """
    token = _current_owner.set(owner_id)
    try:
        with LogContext.bind(owner_id=str(owner_id)):
            yield owner_id
    finally:
        _current_owner.reset(token)
