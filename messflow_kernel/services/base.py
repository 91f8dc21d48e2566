"""
BaseService -- abstract base for all ledger and payroll services.

Responsibility:
    Provides the common constructor (session, tenant context, clock) and
    the transaction-boundary helper every public write operation runs in.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Concrete services
    in ``messflow_modules`` extend this class.

Invariants enforced:
    Transaction boundaries: a public write operation flushes every step
    inside one ``unit_of_work()`` block.  With ``auto_commit=True`` (default)
    the block commits on success.  With ``auto_commit=False`` it only
    flushes and the caller owns the commit (e.g. ``session_scope()``).
    In both modes any exception rolls the session back, so a multi-step
    operation (transaction insert + balance update, expense + salary
    payment) is never half-persisted.

Failure modes:
    - SQLAlchemyError inside the block -> rolled back, re-raised as
      PersistenceError with the original chained.
    - MessflowError inside the block -> rolled back, re-raised unchanged.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from messflow_kernel.domain.clock import Clock, SystemClock
from messflow_kernel.domain.tenant import TenantContext
from messflow_kernel.exceptions import PersistenceError
from messflow_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.base")


class BaseService(ABC):
    """
    Abstract base class for services that mutate tenant data.

    Contract:
        Accepts a SQLAlchemy ``Session`` and a ``TenantContext`` from the
        caller.  Every public operation resolves the owner id first and
        raises ``UnauthenticatedError`` when none is bound.

    Non-goals:
        - No automatic retries.  Retry policy belongs to the caller.
    """

    def __init__(
        self,
        session: Session,
        tenant: TenantContext,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self.session = session
        self._tenant = tenant
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

    def _owner_id(self, operation: str) -> UUID:
        return self._tenant.require_owner_id(operation)

    @contextmanager
    def unit_of_work(self, operation: str) -> Iterator[Session]:
        """
        Run one public write operation as a single store transaction.

        Usage:
            with self.unit_of_work("delete_transaction") as session:
                session.delete(row)
                session.flush()
        """
        with LogContext.bind(operation=operation):
            try:
                yield self.session
                if self._auto_commit:
                    self.session.commit()
                else:
                    self.session.flush()
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.error(
                    "store_operation_failed",
                    extra={"operation": operation, "error": type(exc).__name__},
                )
                raise PersistenceError(operation, type(exc).__name__) from exc
            except Exception:
                self.session.rollback()
                raise

