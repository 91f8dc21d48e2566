"""
Input validation shared by the ledger and payroll services.

Each helper returns the normalized value or raises ``ValidationError``
carrying the offending field.  Pure, no I/O.
"""

from decimal import Decimal
from enum import Enum
from typing import TypeVar

from messflow_kernel.db.types import to_decimal
from messflow_kernel.domain.periods import is_valid_month_year
from messflow_kernel.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def _amount(value, field: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError as exc:
        raise ValidationError(field, value, str(exc)) from exc
    if not amount.is_finite():
        raise ValidationError(field, value, "must be a finite number")
    return amount


def require_positive_amount(value, field: str = "amount") -> Decimal:
    amount = _amount(value, field)
    if amount <= 0:
        raise ValidationError(field, value, "must be greater than zero")
    return amount


def require_non_negative_amount(value, field: str = "amount") -> Decimal:
    amount = _amount(value, field)
    if amount < 0:
        raise ValidationError(field, value, "must not be negative")
    return amount


def coerce_enum(enum_cls: type[E], value, field: str) -> E:
    """Accept an enum member or its ``.value``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = [item.value for item in enum_cls]
        raise ValidationError(field, value, f"must be one of {allowed}") from exc


def require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(field, value, "must not be empty")
    return value.strip()


def require_month_year(value: str, field: str = "month_year") -> str:
    if not isinstance(value, str) or not is_valid_month_year(value):
        raise ValidationError(field, value, "expected yyyy-MM")
    return value
