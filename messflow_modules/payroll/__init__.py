"""
Staff Payroll Module (``messflow_modules.payroll``).

Staff, daily attendance, salary advances, the pure monthly payroll
calculation, and the once-per-month salary payment workflow.

* ``StaffService`` -- staff lifecycle, attendance upsert, advances,
  ``payroll_for``.
* ``SalaryPaymentService`` -- ``is_salary_paid`` and ``pay_salary``.
* ``calculate_payroll`` -- pure arithmetic, no I/O.
"""

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
from messflow_modules.payroll.payment import SalaryPaymentService
from messflow_modules.payroll.selectors import PayrollSelector
from messflow_modules.payroll.service import StaffService

__all__ = [
    "AttendanceRecord",
    "AttendanceStatus",
    "BankDetails",
    "PayrollBreakdown",
    "SalaryAdvance",
    "SalaryPayment",
    "Staff",
    "StaffRole",
    "calculate_payroll",
    "PayrollSelector",
    "SalaryPaymentService",
    "StaffService",
]
