"""
Payroll Helpers (``messflow_modules.payroll.helpers``).

Responsibility
--------------
Pure calculation of a staff member's monthly net payable from base
salary, attendance marks and salary advances.

Architecture position
---------------------
**Modules layer** -- pure helper functions.  No I/O, no session, no
clock, no database access.  Called by ``StaffService.payroll_for`` or
from tests.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal`` -- NEVER ``float``.
* Inputs are never mutated; the same inputs always give the same result.
* ``net_payable`` is never negative.  Excess deductions are not carried
  forward to the next month.
* The daily rate uses a fixed month length (default 30 days), not the
  number of days in the calendar month.
* Intermediate values keep full precision; reported money values are
  rounded half-up once, at the end.

Failure modes
-------------
* No attendance records -> zero deduction.
* Negative base salary or non-positive ``days_per_month`` ->
  ``ValidationError``.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from messflow_kernel.db.types import MONEY_DECIMAL_PLACES, ZERO, round_money
from messflow_kernel.exceptions import ValidationError
from messflow_modules.payroll.models import (
    AttendanceRecord,
    AttendanceStatus,
    PayrollBreakdown,
    SalaryAdvance,
    Staff,
)

DEFAULT_DAYS_PER_MONTH = 30
DEFAULT_HALF_DAY_FACTOR = Decimal("0.5")


def count_attendance(records: Iterable[AttendanceRecord]) -> dict[AttendanceStatus, int]:
    """Number of records per status; every status is present in the result."""
    counts = {status: 0 for status in AttendanceStatus}
    for record in records:
        counts[record.status] += 1
    return counts


def calculate_payroll(
    staff: Staff,
    attendance: Iterable[AttendanceRecord],
    advances: Iterable[SalaryAdvance],
    days_per_month: int = DEFAULT_DAYS_PER_MONTH,
    half_day_factor: Decimal = DEFAULT_HALF_DAY_FACTOR,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    working_days: int = 0,
) -> PayrollBreakdown:
    """
    Compute the monthly payroll breakdown for one staff member.

    ``attendance`` and ``advances`` are expected to be this month's rows
    for ``staff``; the caller does the filtering.  ``working_days`` is
    passed through to the breakdown unchanged.

    Preconditions:
        - ``staff.base_salary >= 0``.
        - ``days_per_month > 0``.
    Postconditions:
        - ``deduction == absent_deduction + half_day_deduction`` (before
          rounding).
        - ``net_payable == max(0, base_salary - deduction - advances_total)``.

    Example:
        base 3000, 2 absent, 1 half day, one advance of 200:
        daily_rate 100, deduction 250, net_payable 2550.
    """
    if staff.base_salary < 0:
        raise ValidationError("base_salary", staff.base_salary, "must not be negative")
    if days_per_month <= 0:
        raise ValidationError("days_per_month", days_per_month, "must be greater than zero")

    base = staff.base_salary
    daily_rate = base / Decimal(days_per_month)

    counts = count_attendance(attendance)
    present = counts[AttendanceStatus.PRESENT]
    absent = counts[AttendanceStatus.ABSENT]
    half = counts[AttendanceStatus.HALF_DAY]

    absent_deduction = absent * daily_rate
    half_day_deduction = half * daily_rate * half_day_factor
    deduction = absent_deduction + half_day_deduction

    advances = tuple(advances)
    advances_total = sum((advance.amount for advance in advances), ZERO)

    net_payable = max(ZERO, base - deduction - advances_total)

    return PayrollBreakdown(
        staff_id=staff.id,
        base_salary=round_money(base, decimal_places),
        daily_rate=round_money(daily_rate, decimal_places),
        present_days=present,
        absent_days=absent,
        half_days=half,
        absent_deduction=round_money(absent_deduction, decimal_places),
        half_day_deduction=round_money(half_day_deduction, decimal_places),
        deduction=round_money(deduction, decimal_places),
        advances_total=round_money(advances_total, decimal_places),
        net_payable=round_money(net_payable, decimal_places),
        working_days=working_days,
        advances=advances,
    )
