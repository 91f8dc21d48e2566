"""Read-only expense queries (``messflow_modules.expenses.selectors``)."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from messflow_kernel.db.errors import translate_store_errors
from messflow_kernel.selectors.base import BaseSelector
from messflow_modules.expenses.models import Expense, ExpenseCategory
from messflow_modules.expenses.orm import ExpenseModel


class ExpenseSelector(BaseSelector):
    """Tenant-scoped expense reads."""

    def get_expense(self, expense_id: UUID) -> Expense | None:
        owner_id = self._owner_id("get_expense")
        with translate_store_errors("get_expense"):
            row = self.session.execute(
                select(ExpenseModel).where(
                    ExpenseModel.id == expense_id,
                    ExpenseModel.owner_id == owner_id,
                )
            ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def list_expenses(self, category: ExpenseCategory | None = None) -> list[Expense]:
        owner_id = self._owner_id("list_expenses")
        stmt = select(ExpenseModel).where(ExpenseModel.owner_id == owner_id)
        if category is not None:
            stmt = stmt.where(ExpenseModel.category == category.value)
        stmt = stmt.order_by(ExpenseModel.date.desc())
        with translate_store_errors("list_expenses"):
            return [row.to_dto() for row in self.session.execute(stmt).scalars()]

    def total_by_category(self) -> dict[ExpenseCategory, Decimal]:
        owner_id = self._owner_id("total_by_category")
        with translate_store_errors("total_by_category"):
            rows = self.session.execute(
                select(ExpenseModel.category, func.sum(ExpenseModel.amount))
                .where(ExpenseModel.owner_id == owner_id)
                .group_by(ExpenseModel.category)
            ).all()
        return {ExpenseCategory(category): Decimal(str(total)) for category, total in rows}
