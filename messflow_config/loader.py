"""
Settings Loader (``messflow_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen dataclasses in
``messflow_config.schema``.  Callers use ``messflow_config.get_settings()``
rather than this module directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or out-of-range values  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from messflow_config.schema import ConfigurationError, EngineSettings, PayrollSettings

_TOP_LEVEL_KEYS = {
    "database_url",
    "echo_sql",
    "pool_size",
    "max_overflow",
    "log_level",
    "payroll",
}
_PAYROLL_KEYS = {
    "days_per_month",
    "half_day_factor",
    "money_decimal_places",
    "salary_expense_category",
    "salary_description_template",
    "clear_advances_on_payment",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("<root>", "settings file must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _reject_unknown(data: dict[str, Any], allowed: set[str], prefix: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigurationError(f"{prefix}{unknown[0]}", "unknown setting")


def parse_payroll(data: dict[str, Any]) -> PayrollSettings:
    """Parse the ``payroll:`` section."""
    _reject_unknown(data, _PAYROLL_KEYS, "payroll.")
    kwargs = dict(data)
    if "half_day_factor" in kwargs:
        try:
            kwargs["half_day_factor"] = Decimal(str(kwargs["half_day_factor"]))
        except InvalidOperation as exc:
            raise ConfigurationError(
                "payroll.half_day_factor", "must be a number"
            ) from exc
    return PayrollSettings(**kwargs)


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse a full settings document.

    Postconditions:
        - Returns a frozen ``EngineSettings`` whose ``checksum`` identifies
          the source document.
    """
    _reject_unknown(data, _TOP_LEVEL_KEYS, "")
    kwargs = {k: v for k, v in data.items() if k != "payroll"}
    payroll = parse_payroll(data.get("payroll") or {})
    return EngineSettings(payroll=payroll, checksum=compute_checksum(data), **kwargs)
