"""
Property-based tests for the member ledger and payroll calculation.

Balance maintenance is checked against a model that replays each payment's
signed effect in call order; payroll against its closed-form definition.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy.orm import sessionmaker

from messflow_kernel.db.engine import build_engine, create_tables
from messflow_kernel.domain.clock import DeterministicClock
from messflow_kernel.domain.tenant import StaticTenantContext
from messflow_modules.members import MemberLedgerService, MemberSelector, PlanType
from messflow_modules.payroll.helpers import calculate_payroll
from messflow_modules.payroll.models import (
    AttendanceRecord,
    AttendanceStatus,
    SalaryAdvance,
    Staff,
    StaffRole,
)

FIXED_NOW = datetime(2025, 3, 15, 12, 0, 0, tzinfo=timezone.utc)

amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("50000.00"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

ledger_ops = st.lists(
    st.one_of(
        st.tuples(st.just("record"), st.sampled_from(["payment", "charge", "adjustment"]), amounts),
        st.tuples(st.just("edit"), st.integers(min_value=0, max_value=50), amounts),
        st.tuples(st.just("delete"), st.integers(min_value=0, max_value=50), st.none()),
    ),
    max_size=25,
)


class TestBalanceReplay:

    @given(opening=amounts, ops=ledger_ops)
    @settings(max_examples=60, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    def test_balance_equals_replayed_payment_effects(self, opening, ops):
        engine = build_engine("sqlite://")
        create_tables(engine)
        session = sessionmaker(bind=engine, expire_on_commit=False)()
        try:
            tenant = StaticTenantContext(uuid4())
            ledger = MemberLedgerService(session, tenant, clock=DeterministicClock(FIXED_NOW))
            member = ledger.add_member("Prop", "", PlanType.ONE_TIME, opening)

            expected = opening
            live: list[tuple] = []  # (id, type, amount)
            for op, arg, amount in ops:
                if op == "record":
                    txn = ledger.record_transaction(member.id, arg, amount)
                    live.append((txn.id, arg, amount))
                    if arg == "payment":
                        expected -= amount
                elif live and op == "edit":
                    txn_id, txn_type, old = live[arg % len(live)]
                    ledger.edit_transaction(txn_id, new_amount=amount)
                    live[arg % len(live)] = (txn_id, txn_type, amount)
                    if txn_type == "payment":
                        expected += old - amount
                elif live and op == "delete":
                    txn_id, txn_type, old = live.pop(arg % len(live))
                    ledger.delete_transaction(txn_id)
                    if txn_type == "payment":
                        expected += old

            assert MemberSelector(session, tenant).get_member(member.id).balance == expected
            assert ledger.reconcile(member.id).is_consistent
        finally:
            session.close()
            engine.dispose()


# ---------------------------------------------------------------------------
# Payroll
# ---------------------------------------------------------------------------

OWNER = uuid4()
STAFF_ID = uuid4()

salaries = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("1000000"), places=2,
    allow_nan=False, allow_infinity=False,
)


@st.composite
def month_inputs(draw):
    staff = Staff(
        id=STAFF_ID, owner_id=OWNER, name="Prop", role=StaffRole.HELPER, phone="",
        base_salary=draw(salaries),
    )
    statuses = draw(st.lists(st.sampled_from(list(AttendanceStatus)), max_size=31))
    attendance = [
        AttendanceRecord(
            id=uuid4(), owner_id=OWNER, staff_id=STAFF_ID, date=date(2025, 3, day), status=status,
        )
        for day, status in enumerate(statuses, start=1)
    ]
    advances = [
        SalaryAdvance(
            id=uuid4(), owner_id=OWNER, staff_id=STAFF_ID, amount=amount, date=FIXED_NOW,
        )
        for amount in draw(st.lists(amounts, max_size=5))
    ]
    return staff, attendance, advances


class TestPayrollProperties:

    @given(month_inputs())
    @settings(max_examples=300)
    def test_deterministic_and_pure(self, inputs):
        staff, attendance, advances = inputs
        before = (list(attendance), list(advances))

        first = calculate_payroll(staff, attendance, advances)
        second = calculate_payroll(staff, attendance, advances)

        assert first == second
        assert (attendance, advances) == before

    @given(month_inputs())
    @settings(max_examples=300)
    def test_net_payable_never_negative(self, inputs):
        staff, attendance, advances = inputs
        assert calculate_payroll(staff, attendance, advances).net_payable >= 0

    @given(month_inputs())
    @settings(max_examples=300)
    def test_day_counts_partition_attendance(self, inputs):
        staff, attendance, advances = inputs
        result = calculate_payroll(staff, attendance, advances)
        assert result.total_days_marked == len(attendance)
        assert result.deduction >= 0
