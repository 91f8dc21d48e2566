"""
Typed Exception Hierarchy for the Messflow ledger engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (UI layer, CLI, tests) must be able to tell "the user typed a bad
amount" apart from "the database is down" without parsing message strings.
Every error therefore:

  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA (the offending field, id, or operation)

Example:
    try:
        ledger.record_transaction(member_id, TransactionType.PAYMENT, amount)
    except ValidationError as e:
        form.mark_invalid(e.field)              # Structured data
    except PersistenceError:
        show_generic_failure(keep_form=True)    # Caller preserves input

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MessflowError (base)
    |
    +-- ValidationError
    |
    +-- NotFoundError
    |   +-- MemberNotFoundError
    |   +-- TransactionNotFoundError
    |   +-- StaffNotFoundError
    |   +-- AdvanceNotFoundError
    |
    +-- UnauthenticatedError
    |
    +-- PersistenceError
    |
    +-- PayrollError
        +-- AlreadyPaidError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Non-positive amount, bad enum value,
                |                             | missing required field
----------------|-----------------------------|-----------------------------------------
Not found       | MEMBER_NOT_FOUND            | Member id unknown for this tenant
                | TRANSACTION_NOT_FOUND       | Transaction id unknown for this tenant
                | STAFF_NOT_FOUND             | Staff id unknown for this tenant
                | ADVANCE_NOT_FOUND           | Salary advance id unknown
----------------|-----------------------------|-----------------------------------------
Tenant          | UNAUTHENTICATED             | No owner bound in the tenant context
----------------|-----------------------------|-----------------------------------------
Store           | PERSISTENCE_ERROR           | Underlying store call failed
----------------|-----------------------------|-----------------------------------------
Payroll         | ALREADY_PAID                | Second salary payment for the same
                |                             | staff member and month_year

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and not-found errors are surfaced immediately with the
   offending field / id.

2. PersistenceError is surfaced as a generic failure; the original
   SQLAlchemy exception is chained (``raise ... from exc``) for logs.

3. AlreadyPaidError is a business outcome, not a crash: the UI shows
   "already paid for {month_year}".

No exception in this module triggers an automatic retry.  Retry policy,
if any, belongs to the caller.
"""

from uuid import UUID


class MessflowError(Exception):
    """
    Base exception for all ledger engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "MESSFLOW_ERROR"


# Validation


class ValidationError(MessflowError):
    """Input rejected before touching the store."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


# Not-found errors


class NotFoundError(MessflowError):
    """Base exception for unknown (or foreign-tenant) ids."""

    code: str = "NOT_FOUND"
    entity: str = "entity"

    def __init__(self, entity_id: UUID | str):
        self.entity_id = str(entity_id)
        super().__init__(f"{self.entity.capitalize()} not found: {entity_id}")


class MemberNotFoundError(NotFoundError):
    """Member with given ID was not found."""

    code: str = "MEMBER_NOT_FOUND"
    entity: str = "member"


class TransactionNotFoundError(NotFoundError):
    """Ledger transaction with given ID was not found."""

    code: str = "TRANSACTION_NOT_FOUND"
    entity: str = "transaction"


class StaffNotFoundError(NotFoundError):
    """Staff member with given ID was not found."""

    code: str = "STAFF_NOT_FOUND"
    entity: str = "staff"


class AdvanceNotFoundError(NotFoundError):
    """Salary advance with given ID was not found."""

    code: str = "ADVANCE_NOT_FOUND"
    entity: str = "salary advance"


# Tenant context


class UnauthenticatedError(MessflowError):
    """No tenant (owner) is bound for the current call."""

    code: str = "UNAUTHENTICATED"

    def __init__(self, operation: str | None = None):
        self.operation = operation
        if operation:
            super().__init__(f"No tenant context for operation '{operation}'")
        else:
            super().__init__("No tenant context")


# Store errors


class PersistenceError(MessflowError):
    """
    Underlying store call failed.

    The original driver/ORM exception is available as ``__cause__``.
    """

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        message = f"Store operation '{operation}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Payroll errors


class PayrollError(MessflowError):
    """Base exception for payroll workflow errors."""

    code: str = "PAYROLL_ERROR"


class AlreadyPaidError(PayrollError):
    """
    Salary already paid for this staff member and month.

    Raised by the pre-check and, authoritatively, when the unique index on
    (staff_id, month_year) rejects the insert.
    """

    code: str = "ALREADY_PAID"

    def __init__(self, staff_id: UUID | str, month_year: str):
        self.staff_id = str(staff_id)
        self.month_year = month_year
        super().__init__(
            f"Salary for staff {staff_id} already paid for {month_year}"
        )
