"""
Expense ORM Persistence Model (``messflow_modules.expenses.orm``).

``ExpenseModel`` persists ``Expense``.  Salary payments reference it via
``salary_payments.expense_id``.
"""

import datetime as dt
from decimal import Decimal

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from messflow_kernel.db.base import TenantScopedBase


class ExpenseModel(TenantScopedBase):
    """ORM model for ``Expense``."""

    __tablename__ = "expenses"

    amount: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_expenses_owner_category", "owner_id", "category"),
        Index("idx_expenses_owner_date", "owner_id", "date"),
    )

    def to_dto(self):
        from messflow_modules.expenses.models import Expense, ExpenseCategory
        return Expense(
            id=self.id,
            owner_id=self.owner_id,
            amount=self.amount,
            category=ExpenseCategory(self.category),
            description=self.description,
            date=self.date,
        )

    def __repr__(self) -> str:
        return f"<ExpenseModel {self.category} {self.amount}>"
