"""Salary payment workflow: expense linkage, idempotency, advance clearing."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from messflow_config.schema import PayrollSettings
from messflow_kernel.domain.tenant import StaticTenantContext
from messflow_kernel.exceptions import (
    AlreadyPaidError,
    PersistenceError,
    StaffNotFoundError,
    ValidationError,
)
from messflow_modules.expenses import ExpenseCategory
from messflow_modules.expenses.orm import ExpenseModel
from messflow_modules.payroll import SalaryPaymentService
from messflow_modules.payroll.orm import SalaryAdvanceModel, SalaryPaymentModel


def _count(session, model) -> int:
    return session.execute(select(func.count(model.id))).scalar_one()


class TestPaySalary:

    def test_payment_marks_month_paid_and_links_expense(
        self, session, staff_service, payments, expense_selector, make_staff, owner_id,
    ):
        staff = make_staff(name="Ravi")
        staff_service.add_advance(staff.id, "200")
        net = staff_service.payroll_for(staff.id).net_payable
        assert not payments.is_salary_paid(staff.id)

        payment = payments.pay_salary(staff.id, net, staff.name)

        assert payments.is_salary_paid(staff.id)
        assert payments.is_salary_paid(staff.id, "2025-03")
        assert not payments.is_salary_paid(staff.id, "2025-04")
        assert payment.month_year == "2025-03"
        assert payment.amount == Decimal("2800.00")

        expense = expense_selector.get_expense(payment.expense_id)
        assert expense is not None
        assert expense.owner_id == owner_id
        assert expense.amount == payment.amount
        assert expense.category is ExpenseCategory.SALARIES
        assert expense.description == "Salary payment - Ravi (2025-03)"
        assert [e.id for e in expense_selector.list_expenses(ExpenseCategory.SALARIES)] == [expense.id]

        assert _count(session, SalaryAdvanceModel) == 0

    def test_only_current_month_advances_cleared(self, session, staff_service, payments, make_staff):
        staff = make_staff()
        staff_service.add_advance(staff.id, "100")
        staff_service.add_advance(staff.id, "50", date=datetime(2025, 2, 20, tzinfo=timezone.utc))
        other = make_staff(name="Other")
        staff_service.add_advance(other.id, "75")

        payments.pay_salary(staff.id, "1000")

        remaining = session.execute(select(SalaryAdvanceModel.amount)).scalars().all()
        assert sorted(remaining) == [Decimal("50"), Decimal("75")]

    def test_staff_name_defaults_to_stored_name(self, payments, expense_selector, make_staff):
        staff = make_staff(name="Meena")
        payment = payments.pay_salary(staff.id, "100")
        assert expense_selector.get_expense(payment.expense_id).description == (
            "Salary payment - Meena (2025-03)"
        )

    def test_second_payment_same_month_rejected(self, session, payments, make_staff, captured_logs):
        staff = make_staff()
        payments.pay_salary(staff.id, "1000")

        with pytest.raises(AlreadyPaidError) as exc_info:
            payments.pay_salary(staff.id, "1000")

        assert exc_info.value.month_year == "2025-03"
        assert exc_info.value.staff_id == str(staff.id)
        assert _count(session, SalaryPaymentModel) == 1
        assert _count(session, ExpenseModel) == 1
        assert any(r["message"] == "salary_already_paid" for r in captured_logs())

    def test_next_month_can_be_paid(self, payments, make_staff, clock, staff_service):
        staff = make_staff()
        payments.pay_salary(staff.id, "1000")
        clock.set_time(datetime(2025, 4, 2, 9, 0, tzinfo=timezone.utc))

        payments.pay_salary(staff.id, "1000")

        assert [p.month_year for p in staff_service.salary_history(staff.id)] == ["2025-04", "2025-03"]

    @pytest.mark.parametrize("amount", ["-0.01", "-10", "abc"])
    def test_invalid_amount(self, session, payments, make_staff, amount):
        staff = make_staff()
        with pytest.raises(ValidationError):
            payments.pay_salary(staff.id, amount)
        assert _count(session, ExpenseModel) == 0

    def test_zero_net_payable_is_paid_and_clears_advances(
        self, session, payments, staff_service, make_staff,
    ):
        staff = make_staff(base_salary=Decimal("3000"))
        staff_service.add_advance(staff.id, "5000")
        net = staff_service.payroll_for(staff.id).net_payable
        assert net == Decimal("0.00")

        payment = payments.pay_salary(staff.id, net)

        assert payment.amount == Decimal("0")
        assert payments.is_salary_paid(staff.id)
        assert _count(session, ExpenseModel) == 1
        assert _count(session, SalaryAdvanceModel) == 0

    @pytest.mark.parametrize("month_year", ["2025-3", "2025-13", "March"])
    def test_malformed_month_year_rejected(self, payments, make_staff, month_year):
        staff = make_staff()
        with pytest.raises(ValidationError) as exc_info:
            payments.is_salary_paid(staff.id, month_year)
        assert exc_info.value.field == "month_year"

    def test_unknown_staff(self, session, payments):
        with pytest.raises(StaffNotFoundError):
            payments.pay_salary(uuid4(), "100")
        assert _count(session, ExpenseModel) == 0

    def test_staff_of_another_tenant(self, session, clock, make_staff):
        staff = make_staff()
        foreign = SalaryPaymentService(session, StaticTenantContext(uuid4()), clock=clock)
        with pytest.raises(StaffNotFoundError):
            foreign.pay_salary(staff.id, "100")

    def test_logs_salary_paid(self, payments, make_staff, captured_logs):
        staff = make_staff()
        payment = payments.pay_salary(staff.id, "100")
        paid = [r for r in captured_logs() if r["message"] == "salary_paid"]
        assert paid[0]["staff_id"] == str(staff.id)
        assert paid[0]["expense_id"] == str(payment.expense_id)


class TestAtomicity:

    def test_payment_failure_rolls_back_expense(self, session, payments, make_staff, monkeypatch):
        staff = make_staff()

        def _fail(self):
            raise OperationalError("INSERT INTO salary_payments", {}, Exception("locked"))

        monkeypatch.setattr(SalaryPaymentModel, "to_dto", _fail)
        with pytest.raises(PersistenceError):
            payments.pay_salary(staff.id, "100")
        monkeypatch.undo()

        assert _count(session, ExpenseModel) == 0
        assert not payments.is_salary_paid(staff.id)

    def test_advance_clear_failure_keeps_payment(
        self, session, staff_service, payments, make_staff, monkeypatch, captured_logs,
    ):
        staff = make_staff()
        staff_service.add_advance(staff.id, "200")

        def _fail(*args, **kwargs):
            raise OperationalError("DELETE FROM salary_advances", {}, Exception("locked"))

        monkeypatch.setattr(payments, "_delete_advances_between", _fail)
        payment = payments.pay_salary(staff.id, "2800")

        assert payments.is_salary_paid(staff.id)
        assert payment.amount == Decimal("2800")
        assert _count(session, ExpenseModel) == 1
        assert _count(session, SalaryAdvanceModel) == 1
        warnings = [r for r in captured_logs() if r["message"] == "salary_advances_clear_failed"]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["month_year"] == "2025-03"

    def test_clearing_can_be_disabled(self, session, tenant, clock, staff_service, make_staff):
        staff = make_staff()
        staff_service.add_advance(staff.id, "200")
        keep = SalaryPaymentService(
            session, tenant, clock=clock,
            settings=PayrollSettings(clear_advances_on_payment=False),
        )

        keep.pay_salary(staff.id, "100")

        assert _count(session, SalaryAdvanceModel) == 1
