"""Expense records (``messflow_modules.expenses``)."""

from messflow_modules.expenses.models import Expense, ExpenseCategory
from messflow_modules.expenses.selectors import ExpenseSelector

__all__ = ["Expense", "ExpenseCategory", "ExpenseSelector"]
