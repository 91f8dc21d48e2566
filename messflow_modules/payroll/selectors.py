"""
Payroll read side (``messflow_modules.payroll.selectors``).

Read-only queries over staff, attendance, salary advances and salary
payments.  All month filters use the inclusive bounds from
``messflow_kernel.domain.periods``.
"""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from sqlalchemy import select

from messflow_kernel.db.errors import translate_store_errors
from messflow_kernel.domain.periods import month_date_bounds, month_datetime_bounds
from messflow_kernel.exceptions import StaffNotFoundError
from messflow_kernel.selectors.base import BaseSelector
from messflow_modules.payroll.models import (
    AttendanceRecord,
    AttendanceStatus,
    SalaryAdvance,
    SalaryPayment,
    Staff,
)
from messflow_modules.payroll.orm import (
    AttendanceRecordModel,
    SalaryAdvanceModel,
    SalaryPaymentModel,
    StaffModel,
)


class PayrollSelector(BaseSelector):
    """Tenant-scoped payroll reads."""

    def get_staff(self, staff_id: UUID) -> Staff:
        owner_id = self._owner_id("get_staff")
        with translate_store_errors("get_staff"):
            row = self.session.execute(
                select(StaffModel).where(
                    StaffModel.id == staff_id,
                    StaffModel.owner_id == owner_id,
                )
            ).scalar_one_or_none()
        if row is None:
            raise StaffNotFoundError(staff_id)
        return row.to_dto()

    def list_staff(self, active_only: bool = True) -> list[Staff]:
        owner_id = self._owner_id("list_staff")
        stmt = select(StaffModel).where(StaffModel.owner_id == owner_id)
        if active_only:
            stmt = stmt.where(StaffModel.is_active.is_(True))
        stmt = stmt.order_by(StaffModel.name)
        with translate_store_errors("list_staff"):
            return [row.to_dto() for row in self.session.execute(stmt).scalars()]

    def attendance_on(self, staff_id: UUID, day: dt.date) -> AttendanceStatus | None:
        """Status marked for ``day``, or None when unmarked."""
        owner_id = self._owner_id("attendance_on")
        with translate_store_errors("attendance_on"):
            status = self.session.execute(
                select(AttendanceRecordModel.status).where(
                    AttendanceRecordModel.owner_id == owner_id,
                    AttendanceRecordModel.staff_id == staff_id,
                    AttendanceRecordModel.date == day,
                )
            ).scalar_one_or_none()
        return AttendanceStatus(status) if status is not None else None

    def attendance_for_month(
        self, staff_id: UUID, moment: dt.date | dt.datetime
    ) -> list[AttendanceRecord]:
        owner_id = self._owner_id("attendance_for_month")
        first, last = month_date_bounds(moment)
        with translate_store_errors("attendance_for_month"):
            rows = self.session.execute(
                select(AttendanceRecordModel)
                .where(
                    AttendanceRecordModel.owner_id == owner_id,
                    AttendanceRecordModel.staff_id == staff_id,
                    AttendanceRecordModel.date >= first,
                    AttendanceRecordModel.date <= last,
                )
                .order_by(AttendanceRecordModel.date)
            ).scalars()
            return [row.to_dto() for row in rows]

    def advances_for_month(self, staff_id: UUID, moment: dt.datetime) -> list[SalaryAdvance]:
        owner_id = self._owner_id("advances_for_month")
        start, end = month_datetime_bounds(moment)
        with translate_store_errors("advances_for_month"):
            rows = self.session.execute(
                select(SalaryAdvanceModel)
                .where(
                    SalaryAdvanceModel.owner_id == owner_id,
                    SalaryAdvanceModel.staff_id == staff_id,
                    SalaryAdvanceModel.date >= start,
                    SalaryAdvanceModel.date <= end,
                )
                .order_by(SalaryAdvanceModel.date.desc())
            ).scalars()
            return [row.to_dto() for row in rows]

    def is_salary_paid(self, staff_id: UUID, month_year: str) -> bool:
        owner_id = self._owner_id("is_salary_paid")
        with translate_store_errors("is_salary_paid"):
            found = self.session.execute(
                select(SalaryPaymentModel.id).where(
                    SalaryPaymentModel.owner_id == owner_id,
                    SalaryPaymentModel.staff_id == staff_id,
                    SalaryPaymentModel.month_year == month_year,
                )
            ).first()
        return found is not None

    def salary_history(self, staff_id: UUID) -> list[SalaryPayment]:
        """Salary payments for one staff member, newest first."""
        owner_id = self._owner_id("salary_history")
        with translate_store_errors("salary_history"):
            rows = self.session.execute(
                select(SalaryPaymentModel)
                .where(
                    SalaryPaymentModel.owner_id == owner_id,
                    SalaryPaymentModel.staff_id == staff_id,
                )
                .order_by(SalaryPaymentModel.paid_at.desc())
            ).scalars()
            return [row.to_dto() for row in rows]
