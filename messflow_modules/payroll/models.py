"""
Payroll Domain Models (``messflow_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects for the staff payroll ledger: staff,
attendance, salary advances, salary payments, and the computed monthly
payroll breakdown.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``calculate_payroll`` and returned by ``StaffService``,
``PayrollSelector`` and ``SalaryPaymentService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.

Failure modes
-------------
* Construction with invalid enum values raises ``ValueError``.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class StaffRole(Enum):
    COOK = "cook"
    CLEANER = "cleaner"
    HELPER = "helper"
    MANAGER = "manager"
    DELIVERY = "delivery"
    OTHER = "other"


class AttendanceStatus(Enum):
    """Daily attendance marks."""
    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half_day"


@dataclass(frozen=True)
class BankDetails:
    """Where a staff member's salary is transferred."""
    bank_name: str | None = None
    account_number: str | None = None
    iban: str | None = None
    swift_code: str | None = None


@dataclass(frozen=True)
class Staff:
    """A salaried staff member of the mess."""
    id: UUID
    owner_id: UUID
    name: str
    role: StaffRole
    phone: str
    base_salary: Decimal
    is_active: bool = True
    bank: BankDetails = BankDetails()


@dataclass(frozen=True)
class AttendanceRecord:
    """At most one per staff member per day."""
    id: UUID
    owner_id: UUID
    staff_id: UUID
    date: dt.date
    status: AttendanceStatus


@dataclass(frozen=True)
class SalaryAdvance:
    """Money paid out ahead of payday; deducted from that month's salary."""
    id: UUID
    owner_id: UUID
    staff_id: UUID
    amount: Decimal
    date: dt.datetime
    notes: str | None = None


@dataclass(frozen=True)
class SalaryPayment:
    """At most one per staff member per ``month_year``."""
    id: UUID
    owner_id: UUID
    staff_id: UUID
    amount: Decimal
    month_year: str
    expense_id: UUID
    paid_at: dt.datetime


@dataclass(frozen=True)
class PayrollBreakdown:
    """
    Result of ``calculate_payroll`` for one staff member and month.

    Money values are rounded to the configured decimal places; day
    counts are exact.  ``advances`` holds the rows that make up
    ``advances_total``.
    """
    staff_id: UUID
    base_salary: Decimal
    daily_rate: Decimal
    present_days: int
    absent_days: int
    half_days: int
    absent_deduction: Decimal
    half_day_deduction: Decimal
    deduction: Decimal
    advances_total: Decimal
    net_payable: Decimal
    working_days: int = 0  # days elapsed this month, today included
    advances: tuple[SalaryAdvance, ...] = ()

    @property
    def total_days_marked(self) -> int:
        return self.present_days + self.absent_days + self.half_days
