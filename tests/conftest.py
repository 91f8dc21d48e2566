"""
Pytest fixtures for the Messflow ledger test suite.

Provides:
- In-memory SQLite engine with every table created, one per test
- Sessions, a fixed DeterministicClock and a tenant context
- Constructed services and selectors
- Member / staff factories
- Captured structured logs

Environment Variables:
- MESSFLOW_TEST_POSTGRES_URL: PostgreSQL URL for tests marked ``postgres``.
  When unset those tests are skipped.
"""

import json
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from messflow_config.schema import PayrollSettings
from messflow_kernel.db.engine import build_engine, create_tables, drop_tables
from messflow_kernel.domain.clock import DeterministicClock
from messflow_kernel.domain.tenant import StaticTenantContext
from messflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from messflow_modules.expenses import ExpenseSelector
from messflow_modules.members import MemberLedgerService, MemberSelector, PlanType
from messflow_modules.payroll import (
    PayrollSelector,
    SalaryPaymentService,
    StaffRole,
    StaffService,
)

# 2025-03-15 12:00 UTC: mid-month, so month bounds are easy to straddle
FIXED_NOW = datetime(2025, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture messflow_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.record_transaction(...)
            logs = captured_logs()
            assert any(r["message"] == "transaction_recorded" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("messflow_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    eng = build_engine("sqlite://")
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    sess = session_factory()
    yield sess
    sess.close()


@pytest.fixture
def file_engine(tmp_path):
    """
    File-backed SQLite database.

    Used where two sessions must hold independent connections.
    """
    eng = build_engine(f"sqlite:///{tmp_path / 'messflow.db'}")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def postgres_engine():
    """PostgreSQL engine from MESSFLOW_TEST_POSTGRES_URL, or skip."""
    url = os.environ.get("MESSFLOW_TEST_POSTGRES_URL")
    if not url:
        pytest.skip("MESSFLOW_TEST_POSTGRES_URL not set")
    eng = build_engine(url, pool_size=5, max_overflow=5)
    drop_tables(eng)
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


# =============================================================================
# Domain context
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def tenant(owner_id):
    return StaticTenantContext(owner_id)


@pytest.fixture
def payroll_settings():
    return PayrollSettings()


# =============================================================================
# Services and selectors
# =============================================================================


@pytest.fixture
def ledger(session, tenant, clock):
    return MemberLedgerService(session, tenant, clock=clock)


@pytest.fixture
def member_selector(session, tenant):
    return MemberSelector(session, tenant)


@pytest.fixture
def staff_service(session, tenant, clock, payroll_settings):
    return StaffService(session, tenant, clock=clock, settings=payroll_settings)


@pytest.fixture
def payments(session, tenant, clock, payroll_settings):
    return SalaryPaymentService(session, tenant, clock=clock, settings=payroll_settings)


@pytest.fixture
def payroll_selector(session, tenant):
    return PayrollSelector(session, tenant)


@pytest.fixture
def expense_selector(session, tenant):
    return ExpenseSelector(session, tenant)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def make_member(ledger):
    """Create an unpaid member owing ``fee``."""

    def _make(name="Asha", fee=Decimal("1500.00"), **kwargs):
        return ledger.add_member(
            name=name,
            phone="9876543210",
            plan_type=kwargs.pop("plan_type", PlanType.TWO_TIME),
            monthly_fee=fee,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_staff(staff_service):
    """Create an active staff member with ``base_salary``."""

    def _make(name="Ravi", base_salary=Decimal("3000.00"), role=StaffRole.COOK):
        return staff_service.add_staff(name=name, role=role, base_salary=base_salary)

    return _make
