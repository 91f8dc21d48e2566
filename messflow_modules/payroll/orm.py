"""
Payroll ORM Persistence Models (``messflow_modules.payroll.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen DTOs defined in
    ``messflow_modules.payroll.models``: staff, attendance records, salary
    advances and salary payments.  Each ORM class provides ``to_dto()``.

Invariants enforced:
    - ``uq_attendance_staff_date``: at most one attendance record per
      staff member per day.  ``StaffService.set_attendance`` upserts
      against it.
    - ``uq_salary_payment_staff_month``: at most one salary payment per
      staff member per ``month_year``.  This index, not the pre-check, is
      what makes concurrent payments safe.
    - ``salary_payments.expense_id`` is NOT NULL and references
      ``expenses.id``.
    - Child rows reference ``staff.id`` with ON DELETE CASCADE.
"""

import datetime as dt
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from messflow_kernel.db.base import TenantScopedBase, UUIDString

# ---------------------------------------------------------------------------
# StaffModel
# ---------------------------------------------------------------------------


class StaffModel(TenantScopedBase):
    """ORM model for ``Staff``.  ``is_active=False`` is the soft delete."""

    __tablename__ = "staff"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    bank_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    account_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    iban: Mapped[str | None] = mapped_column(String(50), nullable=True)
    swift_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        Index("idx_staff_owner_active", "owner_id", "is_active"),
    )

    def to_dto(self):
        from messflow_modules.payroll.models import BankDetails, Staff, StaffRole
        return Staff(
            id=self.id,
            owner_id=self.owner_id,
            name=self.name,
            role=StaffRole(self.role),
            phone=self.phone,
            base_salary=self.base_salary,
            is_active=self.is_active,
            bank=BankDetails(
                bank_name=self.bank_name,
                account_number=self.account_number,
                iban=self.iban,
                swift_code=self.swift_code,
            ),
        )

    def __repr__(self) -> str:
        return f"<StaffModel {self.name} ({self.role})>"


# ---------------------------------------------------------------------------
# AttendanceRecordModel
# ---------------------------------------------------------------------------


class AttendanceRecordModel(TenantScopedBase):
    """ORM model for ``AttendanceRecord``."""

    __tablename__ = "attendance_records"

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id", ondelete="CASCADE"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        UniqueConstraint("staff_id", "date", name="uq_attendance_staff_date"),
        Index("idx_attendance_owner_date", "owner_id", "date"),
    )

    def to_dto(self):
        from messflow_modules.payroll.models import AttendanceRecord, AttendanceStatus
        return AttendanceRecord(
            id=self.id,
            owner_id=self.owner_id,
            staff_id=self.staff_id,
            date=self.date,
            status=AttendanceStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<AttendanceRecordModel {self.staff_id} {self.date} {self.status}>"


# ---------------------------------------------------------------------------
# SalaryAdvanceModel
# ---------------------------------------------------------------------------


class SalaryAdvanceModel(TenantScopedBase):
    """ORM model for ``SalaryAdvance``."""

    __tablename__ = "salary_advances"

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    __table_args__ = (
        Index("idx_salary_advances_staff_date", "staff_id", "date"),
    )

    def to_dto(self):
        from messflow_modules.payroll.models import SalaryAdvance
        return SalaryAdvance(
            id=self.id,
            owner_id=self.owner_id,
            staff_id=self.staff_id,
            amount=self.amount,
            date=self.date,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<SalaryAdvanceModel {self.staff_id} {self.amount}>"


# ---------------------------------------------------------------------------
# SalaryPaymentModel
# ---------------------------------------------------------------------------


class SalaryPaymentModel(TenantScopedBase):
    """ORM model for ``SalaryPayment``."""

    __tablename__ = "salary_payments"

    staff_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("staff.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    expense_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("expenses.id"),
        nullable=False,
    )
    paid_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("staff_id", "month_year", name="uq_salary_payment_staff_month"),
        Index("idx_salary_payments_owner_month", "owner_id", "month_year"),
    )

    def to_dto(self):
        from messflow_modules.payroll.models import SalaryPayment
        return SalaryPayment(
            id=self.id,
            owner_id=self.owner_id,
            staff_id=self.staff_id,
            amount=self.amount,
            month_year=self.month_year,
            expense_id=self.expense_id,
            paid_at=self.paid_at,
        )

    def __repr__(self) -> str:
        return f"<SalaryPaymentModel {self.staff_id} {self.month_year} {self.amount}>"
