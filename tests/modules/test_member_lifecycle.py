"""Member lifecycle (add, renew, delete), reconciliation and read helpers."""

import warnings
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import SAWarning

from messflow_kernel.exceptions import MemberNotFoundError, ValidationError
from messflow_modules.members import MemberStatus, PlanType, TransactionType
from messflow_modules.members.orm import MemberModel, TransactionModel


class TestAddMember:

    def test_unpaid_member_owes_one_month(self, ledger, clock):
        member = ledger.add_member("Asha", "98765", PlanType.THREE_TIME, Decimal("2500.00"))

        assert member.status is MemberStatus.ACTIVE
        assert member.plan_type is PlanType.THREE_TIME
        assert member.balance == Decimal("2500.00")
        assert member.opening_balance == Decimal("2500.00")
        assert member.joining_date == clock.today() == date(2025, 3, 15)
        assert member.plan_expiry_date == date(2025, 4, 15)

    def test_paid_member_records_initial_payment(self, ledger):
        member = ledger.add_member(
            "Asha", "98765", "1-time", "1500", joining_date=date(2025, 1, 31), is_paid=True,
        )

        assert member.balance == Decimal("0")
        assert member.plan_expiry_date == date(2025, 2, 28)
        history = list(ledger.get_member_transactions(member.id))
        assert len(history) == 1
        assert history[0].type is TransactionType.PAYMENT
        assert history[0].amount == Decimal("1500")

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"name": "  "}, "name"),
            ({"plan_type": "4-time"}, "plan_type"),
            ({"monthly_fee": "0"}, "monthly_fee"),
        ],
    )
    def test_invalid_input(self, ledger, kwargs, field):
        args = {"name": "Asha", "phone": "1", "plan_type": "2-time", "monthly_fee": "100"}
        args.update(kwargs)
        with pytest.raises(ValidationError) as exc_info:
            ledger.add_member(**args)
        assert exc_info.value.field == field

    def test_logs_member_added(self, ledger, captured_logs):
        member = ledger.add_member("Asha", "1", "2-time", "100")
        added = [r for r in captured_logs() if r["message"] == "member_added"]
        assert added and added[0]["member_id"] == str(member.id)


class TestRenewMembership:

    def test_renewal_extends_plan_and_records_payment(self, ledger, make_member):
        member = make_member(fee=Decimal("1500.00"))

        renewed = ledger.renew_membership(member.id, date(2025, 5, 15), Decimal("1500.00"))

        assert renewed.plan_expiry_date == date(2025, 5, 15)
        assert renewed.status is MemberStatus.ACTIVE
        assert renewed.balance == Decimal("0")
        [txn] = list(ledger.get_member_transactions(member.id))
        assert txn.type is TransactionType.PAYMENT
        assert txn.notes == "Plan renewal: 2025-04-15 to 2025-05-15"

    def test_reactivates_inactive_member(self, session, ledger, make_member):
        member = make_member()
        session.execute(
            update(MemberModel).where(MemberModel.id == member.id).values(status="inactive")
        )
        session.commit()

        renewed = ledger.renew_membership(member.id, date(2025, 6, 1), "100", notes="cash")

        assert renewed.status is MemberStatus.ACTIVE
        assert list(ledger.get_member_transactions(member.id))[0].notes == "cash"

    def test_unknown_member(self, ledger):
        with pytest.raises(MemberNotFoundError):
            ledger.renew_membership(uuid4(), date(2025, 6, 1), "100")


class TestDeleteMember:

    def test_cascades_transactions(self, session, ledger, member_selector, make_member):
        member = make_member()
        other = make_member(name="Other")
        ledger.record_transaction(member.id, "payment", "10")
        ledger.record_transaction(member.id, "charge", "20")
        ledger.record_transaction(other.id, "payment", "30")

        ledger.delete_member(member.id)

        with pytest.raises(MemberNotFoundError):
            member_selector.get_member(member.id)
        remaining = session.execute(select(func.count(TransactionModel.id))).scalar_one()
        assert remaining == 1

    def test_removes_transactions_without_stale_delete_warnings(
        self, ledger, make_member, captured_logs,
    ):
        member = make_member()
        ledger.record_transaction(member.id, "payment", "10")
        ledger.record_transaction(member.id, "charge", "20")
        history = list(ledger.get_member_transactions(member.id))
        assert len(history) == 2

        with warnings.catch_warnings():
            warnings.simplefilter("error", SAWarning)
            ledger.delete_member(member.id)

        deleted = [r for r in captured_logs() if r["message"] == "member_deleted"]
        assert deleted[0]["transactions_deleted"] == 2

    def test_unknown_member(self, ledger):
        with pytest.raises(MemberNotFoundError):
            ledger.delete_member(uuid4())


class TestReconcile:

    def test_consistent_ledger(self, ledger, make_member):
        member = make_member(fee=Decimal("1500.00"))
        ledger.record_transaction(member.id, "payment", "500")
        ledger.record_transaction(member.id, "payment", "250")
        ledger.record_transaction(member.id, "charge", "999")

        result = ledger.reconcile(member.id)

        assert result.is_consistent
        assert result.expected_balance == Decimal("750")
        assert result.payment_count == 2
        assert result.repaired is False

    def test_detects_drift_without_repairing(self, session, ledger, member_selector, make_member, captured_logs):
        member = make_member(fee=Decimal("1500.00"))
        ledger.record_transaction(member.id, "payment", "500")
        session.execute(
            update(MemberModel).where(MemberModel.id == member.id).values(balance=Decimal("1200"))
        )
        session.commit()

        result = ledger.reconcile(member.id)

        assert result.drift == Decimal("200")
        assert not result.is_consistent
        assert not result.repaired
        assert member_selector.get_member(member.id).balance == Decimal("1200")
        assert any(r["message"] == "member_balance_drift" for r in captured_logs())

    def test_repair_writes_expected_balance(self, session, ledger, member_selector, make_member, captured_logs):
        member = make_member(fee=Decimal("1500.00"))
        ledger.record_transaction(member.id, "payment", "500")
        session.execute(
            update(MemberModel).where(MemberModel.id == member.id).values(balance=Decimal("0"))
        )
        session.commit()

        result = ledger.reconcile(member.id, repair=True)

        assert result.repaired
        assert result.drift == Decimal("-1000")
        assert member_selector.get_member(member.id).balance == Decimal("1000")
        repaired = [r for r in captured_logs() if r["message"] == "member_balance_repaired"]
        assert repaired and repaired[0]["level"] == "WARNING"
        assert ledger.reconcile(member.id).is_consistent


class TestMemberSelector:

    def test_list_members_by_status(self, session, ledger, member_selector, make_member):
        active = make_member(name="Active")
        inactive = make_member(name="Inactive")
        session.execute(
            update(MemberModel).where(MemberModel.id == inactive.id).values(status="inactive")
        )
        session.commit()

        assert {m.id for m in member_selector.list_members()} == {active.id, inactive.id}
        assert [m.id for m in member_selector.list_members(MemberStatus.ACTIVE)] == [active.id]

    def test_total_outstanding(self, ledger, member_selector, make_member):
        first = make_member(fee=Decimal("1500"))
        make_member(fee=Decimal("2000"))
        ledger.record_transaction(first.id, "payment", "1000")

        assert member_selector.total_outstanding() == Decimal("2500")

    def test_collections_on_day(self, ledger, member_selector, make_member, clock):
        member = make_member()
        today = clock.now()
        ledger.record_transaction(member.id, "payment", "100")
        ledger.record_transaction(member.id, "payment", "50", date=today.replace(hour=0, minute=0))
        ledger.record_transaction(member.id, "charge", "70")
        ledger.record_transaction(member.id, "payment", "999", date=today - timedelta(days=1))

        assert member_selector.collections_on(clock.today()) == Decimal("150")

    def test_collections_between(self, ledger, member_selector, make_member):
        member = make_member()
        ledger.record_transaction(
            member.id, "payment", "40", date=datetime(2025, 3, 31, 23, 59, tzinfo=timezone.utc),
        )
        ledger.record_transaction(
            member.id, "payment", "60", date=datetime(2025, 4, 1, 0, 0, tzinfo=timezone.utc),
        )

        total = member_selector.collections_between(
            datetime(2025, 3, 1, tzinfo=timezone.utc),
            datetime(2025, 3, 31, 23, 59, 59, 999999, tzinfo=timezone.utc),
        )
        assert total == Decimal("40")

    def test_empty_tenant(self, member_selector):
        assert member_selector.list_members() == []
        assert member_selector.total_outstanding() == Decimal("0")
