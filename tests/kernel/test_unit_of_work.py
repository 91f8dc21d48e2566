"""Tests for BaseService.unit_of_work transaction boundaries."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from messflow_kernel.db.errors import translate_store_errors
from messflow_kernel.exceptions import PersistenceError, ValidationError
from messflow_kernel.services.base import BaseService
from messflow_modules.expenses.orm import ExpenseModel


class _ExpenseWriter(BaseService):

    def write(self, fail_with: Exception | None = None, amount=Decimal("10")):
        with self.unit_of_work("write_expense"):
            self.session.add(
                ExpenseModel(
                    owner_id=self._owner_id("write_expense"),
                    amount=amount,
                    category="other",
                    description="test",
                    date=self._clock.now(),
                )
            )
            self.session.flush()
            if fail_with is not None:
                raise fail_with


def _count(session) -> int:
    return session.execute(select(func.count(ExpenseModel.id))).scalar_one()


class TestUnitOfWork:

    def test_commits_on_success(self, session, session_factory, tenant, clock):
        _ExpenseWriter(session, tenant, clock=clock).write()
        with session_factory() as other:
            assert _count(other) == 1

    def test_domain_error_rolls_back_and_propagates(self, session, tenant, clock):
        with pytest.raises(ValidationError):
            _ExpenseWriter(session, tenant, clock=clock).write(
                fail_with=ValidationError("amount", 0, "bad"),
            )
        assert _count(session) == 0

    def test_store_error_becomes_persistence_error(self, session, tenant, clock, captured_logs):
        cause = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with pytest.raises(PersistenceError) as exc_info:
            _ExpenseWriter(session, tenant, clock=clock).write(fail_with=cause)

        assert exc_info.value.operation == "write_expense"
        assert exc_info.value.__cause__ is cause
        assert _count(session) == 0
        failures = [r for r in captured_logs() if r["message"] == "store_operation_failed"]
        assert failures and failures[0]["operation"] == "write_expense"

    def test_auto_commit_off_only_flushes(self, session, tenant, clock):
        _ExpenseWriter(session, tenant, clock=clock, auto_commit=False).write()
        assert _count(session) == 1
        session.rollback()
        assert _count(session) == 0


class TestTranslateStoreErrors:

    def test_wraps_sqlalchemy_errors(self):
        cause = OperationalError("SELECT", {}, Exception("gone"))
        with pytest.raises(PersistenceError) as exc_info:
            with translate_store_errors("get_member"):
                raise cause
        assert exc_info.value.__cause__ is cause

    def test_other_errors_untouched(self):
        with pytest.raises(KeyError):
            with translate_store_errors("get_member"):
                raise KeyError("x")
