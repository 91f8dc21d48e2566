"""
Staff Service (``messflow_modules.payroll.service``).

Responsibility
--------------
Staff lifecycle (add, update, deactivate, reactivate, hard delete),
daily attendance marking, salary advances, and the current month's
payroll breakdown.  Salary payment itself lives in
``messflow_modules.payroll.payment``.

Architecture position
---------------------
**Modules layer**.  Delegates the payroll arithmetic to the pure
``calculate_payroll`` helper and reads through ``PayrollSelector``.

Invariants enforced
-------------------
* One attendance record per ``(staff_id, date)``: ``set_attendance`` is an
  upsert against ``uq_attendance_staff_date``, never a blind insert.
* Each public method owns the transaction boundary through
  ``unit_of_work()`` (commit on success, rollback on any exception).
* Deactivation is a soft delete; ``delete_staff`` is the only path that
  removes rows, and it cascades attendance, advances and salary payments.

Failure modes
-------------
* Unknown staff / advance id -> ``StaffNotFoundError`` /
  ``AdvanceNotFoundError``.
* Non-positive advance, negative base salary, unknown role or status ->
  ``ValidationError``.
* Store failure -> ``PersistenceError``.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from messflow_config.schema import PayrollSettings
from messflow_kernel.domain.clock import Clock
from messflow_kernel.domain.tenant import TenantContext
from messflow_kernel.domain.validation import (
    coerce_enum,
    require_non_negative_amount,
    require_positive_amount,
    require_text,
)
from messflow_kernel.exceptions import AdvanceNotFoundError, StaffNotFoundError
from messflow_kernel.logging_config import LogContext, get_logger
from messflow_kernel.services.base import BaseService
from messflow_modules.payroll.helpers import calculate_payroll
from messflow_modules.payroll.models import (
    AttendanceRecord,
    AttendanceStatus,
    BankDetails,
    PayrollBreakdown,
    SalaryAdvance,
    SalaryPayment,
    Staff,
    StaffRole,
)
from messflow_modules.payroll.orm import (
    AttendanceRecordModel,
    SalaryAdvanceModel,
    SalaryPaymentModel,
    StaffModel,
)
from messflow_modules.payroll.selectors import PayrollSelector

logger = get_logger("modules.payroll.service")

_UPSERT_DIALECTS = ("postgresql", "sqlite")


def _dialect_insert(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    return insert


class StaffService(BaseService):
    """
    Staff, attendance and salary-advance management.

    Usage::

        staff_service = StaffService(session, tenant, clock=clock)
        cook = staff_service.add_staff("Ravi", StaffRole.COOK, Decimal("3000"))
        staff_service.set_attendance(cook.id, date(2025, 3, 3), AttendanceStatus.ABSENT)
        breakdown = staff_service.payroll_for(cook.id)
    """

    def __init__(
        self,
        session: Session,
        tenant: TenantContext,
        clock: Clock | None = None,
        settings: PayrollSettings | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, tenant, clock=clock, auto_commit=auto_commit)
        self._settings = settings or PayrollSettings()
        self._selector = PayrollSelector(session, tenant)

    def _get_staff_row(self, owner_id: UUID, staff_id: UUID) -> StaffModel:
        row = self.session.execute(
            select(StaffModel).where(
                StaffModel.id == staff_id,
                StaffModel.owner_id == owner_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise StaffNotFoundError(staff_id)
        return row

    # ------------------------------------------------------------------
    # Staff lifecycle
    # ------------------------------------------------------------------

    def add_staff(
        self,
        name: str,
        role: StaffRole | str,
        base_salary: Decimal | int | str,
        phone: str = "",
        bank: BankDetails | None = None,
    ) -> Staff:
        owner_id = self._owner_id("add_staff")
        name = require_text(name, "name")
        staff_role = coerce_enum(StaffRole, role, "role")
        salary = require_non_negative_amount(base_salary, "base_salary")
        bank = bank or BankDetails()

        with self.unit_of_work("add_staff"):
            row = StaffModel(
                owner_id=owner_id,
                name=name,
                role=staff_role.value,
                phone=phone or "",
                base_salary=salary,
                is_active=True,
                bank_name=bank.bank_name,
                account_number=bank.account_number,
                iban=bank.iban,
                swift_code=bank.swift_code,
            )
            self.session.add(row)
            self.session.flush()
            result = row.to_dto()

        logger.info(
            "staff_added",
            extra={
                "staff_id": str(result.id),
                "role": staff_role.value,
                "base_salary": salary,
            },
        )
        return result

    def update_staff(
        self,
        staff_id: UUID,
        name: str | None = None,
        role: StaffRole | str | None = None,
        base_salary: Decimal | int | str | None = None,
        phone: str | None = None,
        bank: BankDetails | None = None,
    ) -> Staff:
        """Change the given fields; ``None`` leaves a field as it is."""
        owner_id = self._owner_id("update_staff")
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = require_text(name, "name")
        if role is not None:
            changes["role"] = coerce_enum(StaffRole, role, "role").value
        if base_salary is not None:
            changes["base_salary"] = require_non_negative_amount(base_salary, "base_salary")
        if phone is not None:
            changes["phone"] = phone
        if bank is not None:
            changes.update(
                bank_name=bank.bank_name,
                account_number=bank.account_number,
                iban=bank.iban,
                swift_code=bank.swift_code,
            )

        with LogContext.bind(staff_id=staff_id):
            with self.unit_of_work("update_staff"):
                row = self._get_staff_row(owner_id, staff_id)
                for key, value in changes.items():
                    setattr(row, key, value)
                self.session.flush()
                result = row.to_dto()

            logger.info("staff_updated", extra={"fields": sorted(changes)})
        return result

    def _set_active(self, staff_id: UUID, active: bool, operation: str) -> Staff:
        owner_id = self._owner_id(operation)
        with LogContext.bind(staff_id=staff_id):
            with self.unit_of_work(operation):
                row = self._get_staff_row(owner_id, staff_id)
                row.is_active = active
                self.session.flush()
                result = row.to_dto()
            logger.info(
                "staff_reactivated" if active else "staff_deactivated",
            )
        return result

    def deactivate_staff(self, staff_id: UUID) -> Staff:
        """Soft delete: the staff member disappears from active lists."""
        return self._set_active(staff_id, False, "deactivate_staff")

    def reactivate_staff(self, staff_id: UUID) -> Staff:
        return self._set_active(staff_id, True, "reactivate_staff")

    def delete_staff(self, staff_id: UUID) -> None:
        """
        Hard delete a staff member and every dependent row.

        Linked expenses are kept; they remain part of the expense history.
        """
        owner_id = self._owner_id("delete_staff")
        with LogContext.bind(staff_id=staff_id):
            with self.unit_of_work("delete_staff"):
                row = self._get_staff_row(owner_id, staff_id)
                counts = {}
                for label, model in (
                    ("attendance", AttendanceRecordModel),
                    ("advances", SalaryAdvanceModel),
                    ("salary_payments", SalaryPaymentModel),
                ):
                    result = self.session.execute(
                        delete(model)
                        .where(model.owner_id == owner_id, model.staff_id == staff_id)
                        .execution_options(synchronize_session=False)
                    )
                    counts[label] = result.rowcount
                self.session.delete(row)
                self.session.flush()
            logger.info("staff_deleted", extra=counts)

    # ------------------------------------------------------------------
    # Attendance
    # ------------------------------------------------------------------

    def set_attendance(
        self,
        staff_id: UUID,
        date: dt.date,
        status: AttendanceStatus | str,
    ) -> AttendanceRecord:
        """
        Mark attendance for one day, replacing any existing mark.

        No month validation: past and future days are accepted.
        """
        owner_id = self._owner_id("set_attendance")
        mark = coerce_enum(AttendanceStatus, status, "status")

        with LogContext.bind(staff_id=staff_id):
            with self.unit_of_work("set_attendance"):
                self._get_staff_row(owner_id, staff_id)
                dialect_name = self.session.get_bind().dialect.name
                if dialect_name in _UPSERT_DIALECTS:
                    self._upsert_attendance(dialect_name, owner_id, staff_id, date, mark)
                else:
                    self._insert_or_update_attendance(owner_id, staff_id, date, mark)
                row = self.session.execute(
                    select(AttendanceRecordModel)
                    .where(
                        AttendanceRecordModel.staff_id == staff_id,
                        AttendanceRecordModel.date == date,
                    )
                    .execution_options(populate_existing=True)
                ).scalar_one()
                result = row.to_dto()

            logger.info(
                "attendance_marked",
                extra={"date": date, "status": mark.value},
            )
        return result

    def _upsert_attendance(
        self,
        dialect_name: str,
        owner_id: UUID,
        staff_id: UUID,
        date: dt.date,
        mark: AttendanceStatus,
    ) -> None:
        insert = _dialect_insert(dialect_name)
        stmt = insert(AttendanceRecordModel).values(
            id=uuid4(),
            owner_id=owner_id,
            staff_id=staff_id,
            date=date,
            status=mark.value,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["staff_id", "date"],
            set_={"status": stmt.excluded.status, "updated_at": func.now()},
        )
        self.session.execute(stmt)

    def _insert_or_update_attendance(
        self,
        owner_id: UUID,
        staff_id: UUID,
        date: dt.date,
        mark: AttendanceStatus,
    ) -> None:
        # Dialects without ON CONFLICT: insert under a savepoint, update on collision.
        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                AttendanceRecordModel(
                    owner_id=owner_id, staff_id=staff_id, date=date, status=mark.value,
                )
            )
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            row = self.session.execute(
                select(AttendanceRecordModel)
                .where(
                    AttendanceRecordModel.staff_id == staff_id,
                    AttendanceRecordModel.date == date,
                )
                .with_for_update()
            ).scalar_one()
            row.status = mark.value
            self.session.flush()

    def get_attendance(self, staff_id: UUID, date: dt.date) -> AttendanceStatus | None:
        return self._selector.attendance_on(staff_id, date)

    # ------------------------------------------------------------------
    # Salary advances
    # ------------------------------------------------------------------

    def add_advance(
        self,
        staff_id: UUID,
        amount: Decimal | int | str,
        date: dt.datetime | None = None,
        notes: str | None = None,
    ) -> SalaryAdvance:
        owner_id = self._owner_id("add_advance")
        value = require_positive_amount(amount)

        with LogContext.bind(staff_id=staff_id):
            with self.unit_of_work("add_advance"):
                self._get_staff_row(owner_id, staff_id)
                row = SalaryAdvanceModel(
                    owner_id=owner_id,
                    staff_id=staff_id,
                    amount=value,
                    date=date or self._clock.now(),
                    notes=notes,
                )
                self.session.add(row)
                self.session.flush()
                result = row.to_dto()

            logger.info(
                "salary_advance_added",
                extra={"advance_id": str(result.id), "amount": value},
            )
        return result

    def delete_advance(self, advance_id: UUID) -> None:
        owner_id = self._owner_id("delete_advance")
        with self.unit_of_work("delete_advance"):
            row = self.session.execute(
                select(SalaryAdvanceModel).where(
                    SalaryAdvanceModel.id == advance_id,
                    SalaryAdvanceModel.owner_id == owner_id,
                )
            ).scalar_one_or_none()
            if row is None:
                raise AdvanceNotFoundError(advance_id)
            staff_id = row.staff_id
            self.session.delete(row)
            self.session.flush()

        logger.info(
            "salary_advance_deleted",
            extra={"advance_id": str(advance_id), "staff_id": str(staff_id)},
        )

    # ------------------------------------------------------------------
    # Payroll
    # ------------------------------------------------------------------

    def payroll_for(self, staff_id: UUID) -> PayrollBreakdown:
        """Breakdown for the clock's current month."""
        now = self._clock.now()
        staff = self._selector.get_staff(staff_id)
        breakdown = calculate_payroll(
            staff,
            self._selector.attendance_for_month(staff.id, now),
            self._selector.advances_for_month(staff.id, now),
            days_per_month=self._settings.days_per_month,
            half_day_factor=self._settings.half_day_factor,
            decimal_places=self._settings.money_decimal_places,
            working_days=now.day,
        )
        logger.debug(
            "payroll_calculated",
            extra={
                "staff_id": str(staff_id),
                "deduction": breakdown.deduction,
                "advances_total": breakdown.advances_total,
                "net_payable": breakdown.net_payable,
            },
        )
        return breakdown

    def salary_history(self, staff_id: UUID) -> list[SalaryPayment]:
        return self._selector.salary_history(staff_id)
