"""
Engine settings schema.

Frozen dataclasses that the loader parses YAML into.  Every field has a
default matching the behaviour of the hosted Messflow application, so an
empty YAML file yields a working configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_EXPENSE_CATEGORIES = {
    "groceries",
    "utilities",
    "rent",
    "salaries",
    "maintenance",
    "other",
}


class ConfigurationError(ValueError):
    """Settings file is malformed or a value is out of range."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid setting '{key}': {reason}")


@dataclass(frozen=True)
class PayrollSettings:
    """Payroll calculation and payment settings."""

    # Fixed month length used for the daily rate, not calendar days
    days_per_month: int = 30
    half_day_factor: Decimal = Decimal("0.5")
    money_decimal_places: int = 2
    salary_expense_category: str = "salaries"
    salary_description_template: str = "Salary payment - {staff_name} ({month_year})"
    clear_advances_on_payment: bool = True

    def __post_init__(self):
        if self.days_per_month <= 0:
            raise ConfigurationError("payroll.days_per_month", "must be positive")
        if not (Decimal("0") <= self.half_day_factor <= Decimal("1")):
            raise ConfigurationError(
                "payroll.half_day_factor", "must be between 0 and 1"
            )
        if not (0 <= self.money_decimal_places <= 9):
            raise ConfigurationError(
                "payroll.money_decimal_places", "must be between 0 and 9"
            )
        if self.salary_expense_category not in VALID_EXPENSE_CATEGORIES:
            raise ConfigurationError(
                "payroll.salary_expense_category",
                f"must be one of {sorted(VALID_EXPENSE_CATEGORIES)}",
            )
        for placeholder in ("{staff_name}", "{month_year}"):
            if placeholder not in self.salary_description_template:
                raise ConfigurationError(
                    "payroll.salary_description_template",
                    f"missing placeholder {placeholder}",
                )


@dataclass(frozen=True)
class EngineSettings:
    """Top-level settings for the ledger engine."""

    database_url: str = "sqlite:///messflow.db"
    echo_sql: bool = False
    pool_size: int = 10
    max_overflow: int = 5
    log_level: str = "INFO"
    payroll: PayrollSettings = field(default_factory=PayrollSettings)
    checksum: str = ""

    def __post_init__(self):
        if not self.database_url:
            raise ConfigurationError("database_url", "must not be empty")
        if self.pool_size <= 0:
            raise ConfigurationError("pool_size", "must be positive")
        if self.max_overflow < 0:
            raise ConfigurationError("max_overflow", "cannot be negative")
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                "log_level", f"must be one of {sorted(VALID_LOG_LEVELS)}"
            )
