"""
Module: messflow_kernel.db.types
Responsibility: Decimal conversion and rounding helpers for monetary
    values.  Centralizes precision and rounding so that every model and
    service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models, domain,
    services and selectors.  MUST NOT import from any of those layers.

No floats anywhere in the engine.  All monetary amounts use Decimal.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Convert an amount to Decimal without going through float.

    Raises:
        ValueError: If value is a float or not a number.
    """
    if isinstance(value, float):
        raise ValueError("float amounts are not accepted; pass Decimal or str")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the only rounding function used for reported money values.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
