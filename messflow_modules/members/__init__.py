"""
Member Ledger Module (``messflow_modules.members``).

Each member carries a cached outstanding ``balance`` that payments
decrement.  ``MemberLedgerService`` owns every write and keeps the cached
balance consistent with the payment history; ``MemberSelector`` serves
reads.
"""

from messflow_modules.members.models import (
    BalanceReconciliation,
    Member,
    MemberStatus,
    PlanType,
    Transaction,
    TransactionType,
)
from messflow_modules.members.selectors import MemberSelector, TransactionHistory
from messflow_modules.members.service import MemberLedgerService

__all__ = [
    "BalanceReconciliation",
    "Member",
    "MemberStatus",
    "PlanType",
    "Transaction",
    "TransactionType",
    "MemberSelector",
    "TransactionHistory",
    "MemberLedgerService",
]
