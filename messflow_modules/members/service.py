"""
Member Ledger Service (``messflow_modules.members.service``).

Responsibility
--------------
Records, edits and deletes member ledger transactions while keeping each
member's cached ``balance`` consistent, plus the member lifecycle
operations (add, renew, delete) and balance reconciliation.

Architecture position
---------------------
**Modules layer**.  ``MemberLedgerService`` is the sole public write entry
point for the member ledger.  Reads go through ``MemberSelector``.

Invariants enforced
-------------------
* Balance consistency -- only ``payment`` rows move the cached balance:
  ``-amount`` on create, ``+(old - new)`` on edit, ``+amount`` on delete.
  ``charge`` and ``adjustment`` rows are stored but never touch it.
* Atomicity -- the transaction row and the balance update are flushed in
  one ``unit_of_work()``.
* Serialization -- every balance write first touches the member row with
  an UPDATE and only then reads the balance.  The UPDATE takes the row lock
  on PostgreSQL and the database write lock on SQLite (where
  ``FOR UPDATE`` is a no-op), so a concurrent writer on the same member
  waits until this one commits.  Edits and deletes re-read the
  transaction row after that lock; a row removed meanwhile is reported as
  ``TransactionNotFoundError``.
* Tenant scoping -- every lookup filters on the bound owner id; a foreign
  id behaves exactly like an unknown one.

Failure modes
-------------
* ``amount <= 0`` or unknown transaction type -> ``ValidationError``.
* Unknown member / transaction id -> ``MemberNotFoundError`` /
  ``TransactionNotFoundError``.
* Store failure -> ``PersistenceError``; nothing from the call persists.

Audit relevance
---------------
Every mutation logs a structured event (``transaction_recorded``,
``transaction_edited``, ``transaction_deleted``, ``member_added``,
``membership_renewed``, ``member_deleted``).  A repaired drift logs
``member_balance_repaired`` at WARNING.

Usage::

    ledger = MemberLedgerService(session, tenant, clock=clock)
    txn = ledger.record_transaction(
        member_id, TransactionType.PAYMENT, Decimal("1500.00"),
    )
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from messflow_kernel.domain.clock import Clock
from messflow_kernel.domain.periods import add_one_month
from messflow_kernel.domain.tenant import TenantContext
from messflow_kernel.domain.validation import (
    coerce_enum,
    require_positive_amount,
    require_text,
)
from messflow_kernel.exceptions import (
    MemberNotFoundError,
    TransactionNotFoundError,
)
from messflow_kernel.logging_config import LogContext, get_logger
from messflow_kernel.services.base import BaseService
from messflow_modules.members.models import (
    BalanceReconciliation,
    Member,
    MemberStatus,
    PlanType,
    Transaction,
    TransactionType,
)
from messflow_modules.members.orm import MemberModel, TransactionModel
from messflow_modules.members.selectors import MemberSelector, TransactionHistory

logger = get_logger("modules.members.service")


class MemberLedgerService(BaseService):
    """
    Write side of the member balance ledger.

    Contract:
        Every public method runs in its own ``unit_of_work()`` and returns
        frozen DTOs, never ORM instances.
    """

    def __init__(
        self,
        session: Session,
        tenant: TenantContext,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, tenant, clock=clock, auto_commit=auto_commit)
        self._selector = MemberSelector(session, tenant)

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    def _lock_member(self, owner_id: UUID, member_id: UUID) -> MemberModel:
        touched = self.session.execute(
            update(MemberModel)
            .where(MemberModel.id == member_id, MemberModel.owner_id == owner_id)
            .values(updated_at=func.now())
            .execution_options(synchronize_session=False)
        ).rowcount
        if touched == 0:
            raise MemberNotFoundError(member_id)
        return self.session.execute(
            select(MemberModel)
            .where(MemberModel.id == member_id, MemberModel.owner_id == owner_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

    def _get_transaction(
        self, owner_id: UUID, transaction_id: UUID, for_update: bool = False,
    ) -> TransactionModel:
        stmt = select(TransactionModel).where(
            TransactionModel.id == transaction_id,
            TransactionModel.owner_id == owner_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        row = self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise TransactionNotFoundError(transaction_id)
        return row

    def _insert_transaction(
        self,
        owner_id: UUID,
        member: MemberModel,
        txn_type: TransactionType,
        amount: Decimal,
        date: dt.datetime,
        notes: str | None,
    ) -> TransactionModel:
        row = TransactionModel(
            owner_id=owner_id,
            member_id=member.id,
            type=txn_type.value,
            amount=amount,
            date=date,
            notes=notes,
        )
        self.session.add(row)
        if txn_type is TransactionType.PAYMENT:
            member.balance = member.balance - amount
        else:
            logger.debug(
                "transaction_balance_untouched",
                extra={"transaction_type": txn_type.value, "amount": amount},
            )
        self.session.flush()
        return row

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def record_transaction(
        self,
        member_id: UUID,
        type: TransactionType | str,
        amount: Decimal | int | str,
        date: dt.datetime | None = None,
        notes: str | None = None,
    ) -> Transaction:
        """
        Insert a ledger transaction; payments decrement the member balance.

        Raises:
            ValidationError: Non-positive amount or unknown type.
            MemberNotFoundError: Member unknown to this tenant.
            PersistenceError: Store failure; nothing persisted.
        """
        owner_id = self._owner_id("record_transaction")
        txn_type = coerce_enum(TransactionType, type, "type")
        value = require_positive_amount(amount)
        when = date or self._clock.now()

        with LogContext.bind(member_id=member_id):
            with self.unit_of_work("record_transaction"):
                member = self._lock_member(owner_id, member_id)
                row = self._insert_transaction(
                    owner_id, member, txn_type, value, when, notes,
                )
                result = row.to_dto()
                balance = member.balance

            logger.info(
                "transaction_recorded",
                extra={
                    "transaction_id": str(result.id),
                    "transaction_type": txn_type.value,
                    "amount": value,
                    "balance": balance,
                },
            )
        return result

    def edit_transaction(
        self,
        transaction_id: UUID,
        new_amount: Decimal | int | str | None = None,
        new_date: dt.datetime | None = None,
        new_notes: str | None = None,
    ) -> Transaction:
        """
        Update a transaction.  For payments, an amount change moves the
        balance by ``old_amount - new_amount``.
        """
        owner_id = self._owner_id("edit_transaction")
        amount = None if new_amount is None else require_positive_amount(new_amount, "new_amount")

        with self.unit_of_work("edit_transaction"):
            member_id = self._get_transaction(owner_id, transaction_id).member_id
            member = self._lock_member(owner_id, member_id)
            row = self._get_transaction(owner_id, transaction_id, for_update=True)
            old_amount = row.amount
            delta = Decimal("0")

            if amount is not None:
                row.amount = amount
                if row.type == TransactionType.PAYMENT.value:
                    delta = old_amount - amount
                    member.balance = member.balance + delta
                else:
                    logger.debug(
                        "transaction_balance_untouched",
                        extra={"transaction_type": row.type, "amount": amount},
                    )
            if new_date is not None:
                row.date = new_date
            if new_notes is not None:
                row.notes = new_notes

            self.session.flush()
            result = row.to_dto()
            balance = member.balance

        logger.info(
            "transaction_edited",
            extra={
                "transaction_id": str(transaction_id),
                "member_id": str(result.member_id),
                "old_amount": old_amount,
                "new_amount": result.amount,
                "balance_delta": delta,
                "balance": balance,
            },
        )
        return result

    def delete_transaction(self, transaction_id: UUID) -> None:
        """Remove a transaction; deleting a payment adds its amount back."""
        owner_id = self._owner_id("delete_transaction")

        with self.unit_of_work("delete_transaction"):
            member_id = self._get_transaction(owner_id, transaction_id).member_id
            member = self._lock_member(owner_id, member_id)
            row = self._get_transaction(owner_id, transaction_id, for_update=True)
            txn_type = row.type
            amount = row.amount
            if txn_type == TransactionType.PAYMENT.value:
                member.balance = member.balance + amount
            else:
                logger.debug(
                    "transaction_balance_untouched",
                    extra={"transaction_type": txn_type, "amount": amount},
                )
            self.session.delete(row)
            self.session.flush()
            balance = member.balance

        logger.info(
            "transaction_deleted",
            extra={
                "transaction_id": str(transaction_id),
                "member_id": str(member_id),
                "transaction_type": txn_type,
                "amount": amount,
                "balance": balance,
            },
        )

    def get_member_transactions(self, member_id: UUID) -> TransactionHistory:
        """Lazy, restartable history, newest first."""
        return self._selector.member_transactions(member_id)

    # ------------------------------------------------------------------
    # Member lifecycle
    # ------------------------------------------------------------------

    def add_member(
        self,
        name: str,
        phone: str,
        plan_type: PlanType | str,
        monthly_fee: Decimal | int | str,
        joining_date: dt.date | None = None,
        is_paid: bool = False,
    ) -> Member:
        """
        Create an active member owing one month's fee.

        With ``is_paid`` the first month is settled by a payment recorded
        in the same store transaction, leaving the balance at zero.
        """
        owner_id = self._owner_id("add_member")
        name = require_text(name, "name")
        plan = coerce_enum(PlanType, plan_type, "plan_type")
        fee = require_positive_amount(monthly_fee, "monthly_fee")
        joined = joining_date or self._clock.today()

        with self.unit_of_work("add_member"):
            member = MemberModel(
                owner_id=owner_id,
                name=name,
                phone=phone or "",
                plan_type=plan.value,
                monthly_fee=fee,
                opening_balance=fee,
                balance=fee,
                status=MemberStatus.ACTIVE.value,
                joining_date=joined,
                plan_expiry_date=add_one_month(joined),
            )
            self.session.add(member)
            self.session.flush()
            if is_paid:
                self._insert_transaction(
                    owner_id,
                    member,
                    TransactionType.PAYMENT,
                    fee,
                    self._clock.now(),
                    "Initial payment on joining",
                )
            result = member.to_dto()

        logger.info(
            "member_added",
            extra={
                "member_id": str(result.id),
                "plan_type": plan.value,
                "monthly_fee": fee,
                "is_paid": is_paid,
            },
        )
        return result

    def renew_membership(
        self,
        member_id: UUID,
        new_expiry_date: dt.date,
        amount: Decimal | int | str,
        notes: str | None = None,
    ) -> Member:
        """Extend the plan, reactivate the member and record the renewal payment."""
        owner_id = self._owner_id("renew_membership")
        value = require_positive_amount(amount)

        with LogContext.bind(member_id=member_id):
            with self.unit_of_work("renew_membership"):
                member = self._lock_member(owner_id, member_id)
                old_expiry = member.plan_expiry_date
                member.plan_expiry_date = new_expiry_date
                member.status = MemberStatus.ACTIVE.value
                self._insert_transaction(
                    owner_id,
                    member,
                    TransactionType.PAYMENT,
                    value,
                    self._clock.now(),
                    notes or f"Plan renewal: {old_expiry} to {new_expiry_date}",
                )
                result = member.to_dto()

            logger.info(
                "membership_renewed",
                extra={
                    "old_expiry": old_expiry,
                    "new_expiry": new_expiry_date,
                    "amount": value,
                    "balance": result.balance,
                },
            )
        return result

    def delete_member(self, member_id: UUID) -> None:
        """Hard delete a member together with its transactions."""
        owner_id = self._owner_id("delete_member")

        with self.unit_of_work("delete_member"):
            member = self._lock_member(owner_id, member_id)
            removed = self.session.execute(
                delete(TransactionModel)
                .where(
                    TransactionModel.owner_id == owner_id,
                    TransactionModel.member_id == member_id,
                )
                .execution_options(synchronize_session="fetch")
            ).rowcount
            self.session.delete(member)
            self.session.flush()

        logger.info(
            "member_deleted",
            extra={"member_id": str(member_id), "transactions_deleted": removed},
        )

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, member_id: UUID, repair: bool = False) -> BalanceReconciliation:
        """
        Recompute ``opening_balance - sum(payments)`` and compare it with
        the cached balance.

        With ``repair=True`` a drift is written back to the member row.
        """
        owner_id = self._owner_id("reconcile")

        with LogContext.bind(member_id=member_id):
            with self.unit_of_work("reconcile"):
                member = self._lock_member(owner_id, member_id)
                paid, count = self._selector.payment_summary(member_id)
                expected = member.opening_balance - paid
                cached = member.balance
                repaired = False
                if repair and cached != expected:
                    member.balance = expected
                    self.session.flush()
                    repaired = True

            result = BalanceReconciliation(
                member_id=member_id,
                cached_balance=cached,
                expected_balance=expected,
                payment_count=count,
                repaired=repaired,
            )
            if repaired:
                logger.warning(
                    "member_balance_repaired",
                    extra={
                        "cached_balance": cached,
                        "expected_balance": expected,
                        "drift": result.drift,
                    },
                )
            elif not result.is_consistent:
                logger.warning(
                    "member_balance_drift",
                    extra={
                        "cached_balance": cached,
                        "expected_balance": expected,
                        "drift": result.drift,
                    },
                )
        return result
