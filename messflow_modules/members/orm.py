"""
Member Ledger ORM Persistence Models (``messflow_modules.members.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen DTOs defined in
    ``messflow_modules.members.models``.  Each ORM class provides
    ``to_dto()``.

Invariants enforced:
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(50) containing the enum .value string.
    - Transactions reference their member with ON DELETE CASCADE; deleting
      a member removes its ledger.
"""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from messflow_kernel.db.base import TenantScopedBase, UUIDString

# ---------------------------------------------------------------------------
# MemberModel
# ---------------------------------------------------------------------------


class MemberModel(TenantScopedBase):
    """
    ORM model for ``Member``.

    Contract:
        ``balance`` is a cached running total mutated incrementally by the
        ledger service; ``opening_balance`` is the value it started from and
        never changes.  Together with the payment rows they let
        ``reconcile()`` recompute the expected balance.
    """

    __tablename__ = "members"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    plan_type: Mapped[str] = mapped_column(String(50), nullable=False)
    monthly_fee: Mapped[Decimal] = mapped_column(nullable=False)
    opening_balance: Mapped[Decimal] = mapped_column(nullable=False)
    balance: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")
    joining_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    plan_expiry_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        Index("idx_members_owner_status", "owner_id", "status"),
    )

    def to_dto(self):
        from messflow_modules.members.models import Member, MemberStatus, PlanType
        return Member(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            phone=self.phone,
            plan_type=PlanType(self.plan_type),
            monthly_fee=self.monthly_fee,
            opening_balance=self.opening_balance,
            balance=self.balance,
            status=MemberStatus(self.status),
            joining_date=self.joining_date,
            plan_expiry_date=self.plan_expiry_date,
        )

    def __repr__(self) -> str:
        return f"<MemberModel {self.name} balance={self.balance}>"


# ---------------------------------------------------------------------------
# TransactionModel
# ---------------------------------------------------------------------------


class TransactionModel(TenantScopedBase):
    """
    ORM model for ``Transaction`` -- one member ledger entry.

    Contract:
        ``type`` is one of payment / charge / adjustment.  Only payment rows
        participate in balance maintenance.
    """

    __tablename__ = "transactions"

    member_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    __table_args__ = (
        Index("idx_transactions_member_date", "member_id", "date"),
        Index("idx_transactions_owner_date", "owner_id", "date"),
    )

    def to_dto(self):
        from messflow_modules.members.models import Transaction, TransactionType
        return Transaction(
            id=self.id,
            owner_id=self.owner_id,
            member_id=self.member_id,
            type=TransactionType(self.type),
            amount=self.amount,
            date=self.date,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<TransactionModel {self.type} {self.amount} member={self.member_id}>"
