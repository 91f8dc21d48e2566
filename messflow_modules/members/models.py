"""
Member Ledger Domain Models (``messflow_modules.members.models``).

Responsibility
--------------
Frozen dataclass value objects for the member balance ledger: members,
ledger transactions, and balance reconciliation results.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Returned by
``MemberLedgerService`` and ``MemberSelector``; never ORM instances.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class TransactionType(Enum):
    """Kinds of ledger entry."""
    PAYMENT = "payment"
    CHARGE = "charge"
    ADJUSTMENT = "adjustment"


class PlanType(Enum):
    """Meals per day covered by a member's plan."""
    ONE_TIME = "1-time"
    TWO_TIME = "2-time"
    THREE_TIME = "3-time"


class MemberStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Member:
    """A mess member and their cached outstanding balance."""
    id: UUID
    owner_id: UUID
    name: str
    phone: str
    plan_type: PlanType
    monthly_fee: Decimal
    opening_balance: Decimal
    balance: Decimal  # cached running total, see MemberLedgerService
    status: MemberStatus
    joining_date: dt.date
    plan_expiry_date: dt.date | None = None


@dataclass(frozen=True)
class Transaction:
    """One ledger entry for a member."""
    id: UUID
    owner_id: UUID
    member_id: UUID
    type: TransactionType
    amount: Decimal
    date: dt.datetime
    notes: str | None = None

    @property
    def affects_balance(self) -> bool:
        """Only payments move the cached balance."""
        return self.type is TransactionType.PAYMENT


@dataclass(frozen=True)
class BalanceReconciliation:
    """
    Result of recomputing a member's balance from payment history.

    ``expected_balance = opening_balance - sum(payment amounts)``.
    ``drift = cached_balance - expected_balance``; zero when consistent.
    """
    member_id: UUID
    cached_balance: Decimal
    expected_balance: Decimal
    payment_count: int
    repaired: bool = False

    @property
    def drift(self) -> Decimal:
        return self.cached_balance - self.expected_balance

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0
