"""
Member ledger read side (``messflow_modules.members.selectors``).

Read-only queries over members and their transactions.  Balance is
never derived here on the hot path: ``Member.balance`` is the cached value.
The one exception is ``payment_summary()``, used by reconciliation.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterator
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from messflow_kernel.db.errors import translate_store_errors
from messflow_kernel.domain.tenant import TenantContext
from messflow_kernel.exceptions import MemberNotFoundError
from messflow_kernel.selectors.base import BaseSelector
from messflow_modules.members.models import (
    Member,
    MemberStatus,
    Transaction,
    TransactionType,
)
from messflow_modules.members.orm import MemberModel, TransactionModel


class TransactionHistory:
    """
    Lazy, restartable, finite view of one member's transactions.

    Ordered by ``date`` descending.  Nothing is read until iteration starts,
    and every new iteration re-queries the store, so a second pass sees
    edits made after the first.
    """

    def __init__(
        self,
        session: Session,
        owner_id: UUID,
        member_id: UUID,
        batch_size: int = 100,
    ):
        self._session = session
        self._owner_id = owner_id
        self._member_id = member_id
        self._batch_size = batch_size

    def _statement(self):
        return (
            select(TransactionModel)
            .where(
                TransactionModel.owner_id == self._owner_id,
                TransactionModel.member_id == self._member_id,
            )
            .order_by(
                TransactionModel.date.desc(),
                TransactionModel.created_at.desc(),
                TransactionModel.id,
            )
            .execution_options(yield_per=self._batch_size)
        )

    def __iter__(self) -> Iterator[Transaction]:
        with translate_store_errors("get_member_transactions"):
            for row in self._session.execute(self._statement()).scalars():
                yield row.to_dto()

    def __repr__(self) -> str:
        return f"<TransactionHistory member={self._member_id}>"


class MemberSelector(BaseSelector):
    """Read-only queries for members and ledger history."""

    def __init__(self, session: Session, tenant: TenantContext):
        super().__init__(session, tenant)

    def get_member(self, member_id: UUID) -> Member:
        owner_id = self._owner_id("get_member")
        with translate_store_errors("get_member"):
            row = self.session.execute(
                select(MemberModel).where(
                    MemberModel.id == member_id,
                    MemberModel.owner_id == owner_id,
                )
            ).scalar_one_or_none()
        if row is None:
            raise MemberNotFoundError(member_id)
        return row.to_dto()

    def list_members(self, status: MemberStatus | None = None) -> list[Member]:
        owner_id = self._owner_id("list_members")
        stmt = select(MemberModel).where(MemberModel.owner_id == owner_id)
        if status is not None:
            stmt = stmt.where(MemberModel.status == status.value)
        stmt = stmt.order_by(MemberModel.created_at.desc(), MemberModel.name)
        with translate_store_errors("list_members"):
            return [row.to_dto() for row in self.session.execute(stmt).scalars()]

    def member_transactions(self, member_id: UUID) -> TransactionHistory:
        """
        History of one member, newest first.

        Raises:
            MemberNotFoundError: If the member is unknown to this tenant.
        """
        member = self.get_member(member_id)
        return TransactionHistory(self.session, member.owner_id, member.id)

    def payment_summary(self, member_id: UUID) -> tuple[Decimal, int]:
        """Sum and count of payment-type transactions for one member."""
        owner_id = self._owner_id("payment_summary")
        # Decimal sum: SQLite SUM() over REAL columns is inexact
        with translate_store_errors("payment_summary"):
            paid = self.session.execute(
                select(TransactionModel.amount).where(
                    TransactionModel.owner_id == owner_id,
                    TransactionModel.member_id == member_id,
                    TransactionModel.type == TransactionType.PAYMENT.value,
                )
            ).scalars().all()
        return sum(paid, Decimal("0")), len(paid)

    def total_outstanding(self) -> Decimal:
        """Sum of cached balances across the tenant's members."""
        owner_id = self._owner_id("total_outstanding")
        with translate_store_errors("total_outstanding"):
            total = self.session.execute(
                select(func.coalesce(func.sum(MemberModel.balance), 0)).where(
                    MemberModel.owner_id == owner_id
                )
            ).scalar_one()
        return Decimal(str(total))

    def collections_on(self, day: dt.date, tz: dt.tzinfo = dt.timezone.utc) -> Decimal:
        """Sum of payments dated on ``day`` (e.g. today's collections)."""
        return self.collections_between(
            dt.datetime.combine(day, dt.time.min, tzinfo=tz),
            dt.datetime.combine(day, dt.time.max, tzinfo=tz),
        )

    def collections_between(self, start: dt.datetime, end: dt.datetime) -> Decimal:
        """Sum of payments dated within ``[start, end]``."""
        owner_id = self._owner_id("collections_between")
        with translate_store_errors("collections_between"):
            total = self.session.execute(
                select(func.coalesce(func.sum(TransactionModel.amount), 0)).where(
                    TransactionModel.owner_id == owner_id,
                    TransactionModel.type == TransactionType.PAYMENT.value,
                    TransactionModel.date >= start,
                    TransactionModel.date <= end,
                )
            ).scalar_one()
        return Decimal(str(total))
