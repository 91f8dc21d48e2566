"""
Expense Domain Models (``messflow_modules.expenses.models``).

Frozen value objects for expense rows.  The payroll workflow writes one
``salaries`` expense per salary payment.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ExpenseCategory(Enum):
    GROCERIES = "groceries"
    UTILITIES = "utilities"
    RENT = "rent"
    SALARIES = "salaries"
    MAINTENANCE = "maintenance"
    OTHER = "other"


@dataclass(frozen=True)
class Expense:
    """An operating expense of the mess."""
    id: UUID
    owner_id: UUID
    amount: Decimal
    category: ExpenseCategory
    description: str
    date: dt.datetime
