"""
Salary Payment Service (``messflow_modules.payroll.payment``).

Responsibility
--------------
Pays a staff member's salary for the current calendar month: writes the
``salaries`` expense, writes the salary payment that references it, and
clears that month's salary advances.

Architecture position
---------------------
**Modules layer**.  Reads through ``PayrollSelector``; writes expenses
(``messflow_modules.expenses``) and payroll rows in one store transaction.

Invariants enforced
-------------------
* At most one salary payment per ``(staff_id, month_year)``.  The
  ``is_salary_paid`` pre-check rejects the common case early; the unique
  index ``uq_salary_payment_staff_month`` is the authority when two
  payments race past the pre-check.
* Every salary payment references an expense of the same tenant, the same
  amount and category ``salaries``.  Expense and payment are flushed in
  the same ``unit_of_work()``; a rejected payment rolls the expense back.
* Advance clearing runs in a SAVEPOINT.  Its failure is rolled back to the
  savepoint, logged, and does not undo the payment.

Failure modes
-------------
* Second payment for the month -> ``AlreadyPaidError``.
* ``amount < 0`` -> ``ValidationError``.  A zero amount is accepted, so a
  month whose advances cover the whole salary can still be closed.
* Unknown staff id -> ``StaffNotFoundError``.
* Store failure while writing expense or payment -> ``PersistenceError``;
  nothing persisted.

Audit relevance
---------------
``salary_paid`` is logged with staff id, amount, month and the linked
expense id.  ``salary_advances_clear_failed`` is logged at WARNING when
clearing fails and the payment is kept.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from messflow_config.schema import PayrollSettings
from messflow_kernel.domain.clock import Clock
from messflow_kernel.domain.periods import month_datetime_bounds, month_year_of
from messflow_kernel.domain.tenant import TenantContext
from messflow_kernel.domain.validation import (
    require_month_year,
    require_non_negative_amount,
)
from messflow_kernel.exceptions import AlreadyPaidError, StaffNotFoundError
from messflow_kernel.logging_config import LogContext, get_logger
from messflow_kernel.services.base import BaseService
from messflow_modules.expenses.orm import ExpenseModel
from messflow_modules.payroll.models import SalaryPayment
from messflow_modules.payroll.orm import (
    SalaryAdvanceModel,
    SalaryPaymentModel,
    StaffModel,
)
from messflow_modules.payroll.selectors import PayrollSelector

logger = get_logger("modules.payroll.payment")


class SalaryPaymentService(BaseService):
    """
    Monthly salary payment workflow.

    Usage::

        payments = SalaryPaymentService(session, tenant, clock=clock)
        breakdown = staff_service.payroll_for(staff.id)
        if not payments.is_salary_paid(staff.id):
            payments.pay_salary(staff.id, breakdown.net_payable, staff.name)
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

    def is_salary_paid(self, staff_id: UUID, month_year: str | None = None) -> bool:
        """
        True if a payment exists for ``month_year`` (default: current month).

        Raises:
            ValidationError: ``month_year`` is not in ``yyyy-MM`` form.
        """
        if month_year is None:
            month_year = month_year_of(self._clock.now())
        return self._selector.is_salary_paid(staff_id, require_month_year(month_year))

    def pay_salary(
        self,
        staff_id: UUID,
        amount: Decimal | int | str,
        staff_name: str | None = None,
    ) -> SalaryPayment:
        """
        Pay this month's salary.

        ``staff_name`` only feeds the expense description; it defaults to
        the stored name.

        Raises:
            AlreadyPaidError: A payment for this staff member and month
                already exists, or a concurrent payment won the race.
            ValidationError: ``amount < 0``.
            StaffNotFoundError: Unknown staff id for this tenant.
            PersistenceError: Store failure; nothing persisted.
        """
        owner_id = self._owner_id("pay_salary")
        value = require_non_negative_amount(amount)
        now = self._clock.now()
        month_year = month_year_of(now)

        with LogContext.bind(staff_id=staff_id):
            with self.unit_of_work("pay_salary"):
                staff = self.session.execute(
                    select(StaffModel).where(
                        StaffModel.id == staff_id,
                        StaffModel.owner_id == owner_id,
                    )
                ).scalar_one_or_none()
                if staff is None:
                    raise StaffNotFoundError(staff_id)

                if self.is_salary_paid(staff_id, month_year):
                    logger.info("salary_already_paid", extra={"month_year": month_year})
                    raise AlreadyPaidError(staff_id, month_year)

                expense = self._insert_expense(
                    owner_id, value, staff_name or staff.name, month_year, now,
                )
                payment = self._insert_payment(
                    owner_id, staff_id, value, month_year, expense.id, now,
                )

                cleared = 0
                if self._settings.clear_advances_on_payment:
                    cleared = self._clear_advances(owner_id, staff_id, now)

                result = payment.to_dto()

            logger.info(
                "salary_paid",
                extra={
                    "payment_id": str(result.id),
                    "amount": value,
                    "month_year": month_year,
                    "expense_id": str(result.expense_id),
                    "advances_cleared": cleared,
                },
            )
        return result

    def _insert_expense(
        self,
        owner_id: UUID,
        amount: Decimal,
        staff_name: str,
        month_year: str,
        now: dt.datetime,
    ) -> ExpenseModel:
        expense = ExpenseModel(
            owner_id=owner_id,
            amount=amount,
            category=self._settings.salary_expense_category,
            description=self._settings.salary_description_template.format(
                staff_name=staff_name, month_year=month_year,
            ),
            date=now,
        )
        self.session.add(expense)
        self.session.flush()
        return expense

    def _insert_payment(
        self,
        owner_id: UUID,
        staff_id: UUID,
        amount: Decimal,
        month_year: str,
        expense_id: UUID,
        now: dt.datetime,
    ) -> SalaryPaymentModel:
        payment = SalaryPaymentModel(
            owner_id=owner_id,
            staff_id=staff_id,
            amount=amount,
            month_year=month_year,
            expense_id=expense_id,
            paid_at=now,
        )
        self.session.add(payment)
        try:
            self.session.flush()
        except IntegrityError as exc:
            # staff and expense were resolved in this transaction, so the
            # only constraint left to violate is the (staff_id, month_year) index
            logger.info(
                "salary_payment_race_lost",
                extra={"month_year": month_year, "error": type(exc.orig).__name__},
            )
            raise AlreadyPaidError(staff_id, month_year) from exc
        return payment

    def _clear_advances(self, owner_id: UUID, staff_id: UUID, now: dt.datetime) -> int:
        """
        Delete this month's advances inside a SAVEPOINT.

        Returns the number of rows removed, 0 when clearing failed.
        """
        start, end = month_datetime_bounds(now)
        savepoint = self.session.begin_nested()
        try:
            cleared = self._delete_advances_between(owner_id, staff_id, start, end)
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            logger.warning(
                "salary_advances_clear_failed",
                extra={
                    "month_year": month_year_of(now),
                    "error": type(exc).__name__,
                },
            )
            return 0
        return cleared

    def _delete_advances_between(
        self,
        owner_id: UUID,
        staff_id: UUID,
        start: dt.datetime,
        end: dt.datetime,
    ) -> int:
        result = self.session.execute(
            delete(SalaryAdvanceModel)
            .where(
                SalaryAdvanceModel.owner_id == owner_id,
                SalaryAdvanceModel.staff_id == staff_id,
                SalaryAdvanceModel.date >= start,
                SalaryAdvanceModel.date <= end,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
