"""
messflow_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_settings()``.  No other component reads settings files or
    environment variables directly.

Resolution order:
    1. explicit ``path`` argument
    2. ``MESSFLOW_CONFIG`` environment variable
    3. the bundled ``defaults.yaml``

    ``MESSFLOW_DATABASE_URL``, when set, overrides ``database_url``.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ConfigurationError`` -- unknown keys or out-of-range values.

Audit relevance:
    Every successful ``get_settings()`` call logs ``settings_loaded`` with
    the source path and checksum, so a run can be tied to the exact
    settings that governed it.
"""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path

from messflow_config.loader import load_yaml_file, parse_settings
from messflow_config.schema import ConfigurationError, EngineSettings, PayrollSettings
from messflow_kernel.logging_config import get_logger

logger = get_logger("config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"
CONFIG_ENV_VAR = "MESSFLOW_CONFIG"
DATABASE_URL_ENV_VAR = "MESSFLOW_DATABASE_URL"

__all__ = [
    "ConfigurationError",
    "EngineSettings",
    "PayrollSettings",
    "get_settings",
]


def get_settings(path: Path | str | None = None) -> EngineSettings:
    """
    The ONLY public configuration entrypoint.

    Returns:
        Frozen ``EngineSettings``.
    """
    if path is not None:
        source = Path(path)
    elif os.environ.get(CONFIG_ENV_VAR):
        source = Path(os.environ[CONFIG_ENV_VAR])
    else:
        source = DEFAULT_SETTINGS_PATH

    settings = parse_settings(load_yaml_file(source))

    url_override = os.environ.get(DATABASE_URL_ENV_VAR)
    if url_override:
        settings = dataclasses.replace(settings, database_url=url_override)

    logger.info(
        "settings_loaded",
        extra={
            "source": str(source),
            "checksum": settings.checksum,
            "database_url_overridden": bool(url_override),
        },
    )
    return settings
