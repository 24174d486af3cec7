"""
clinic_config -- single public entrypoint for clinic configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  Services receive the returned ``ClinicConfig`` (or one
    of its policy sections) by injection and never read files or
    environment variables themselves.

Resolution order:
    1. the ``path`` argument,
    2. the ``CLINIC_CONFIG_PATH`` environment variable,
    3. the packaged ``defaults/clinic.yaml``.

Failure modes:
    - ``FileNotFoundError`` -- the chosen file does not exist.
    - ``ValueError`` -- unknown keys or out-of-range values.

Audit relevance:
    Every successful call logs ``CLINIC_CONFIG_TRACE`` with the source path
    and checksum, tying reports and ledger activity to the exact
    configuration in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from clinic_config.loader import load_config_file
from clinic_config.schema import (
    BookingPolicy,
    ClinicConfig,
    ConcurrencyPolicy,
    DatabaseConfig,
    InventoryPolicy,
    LoggingConfig,
    NotificationPolicy,
    ReportingPolicy,
)

_logger = logging.getLogger("clinic_kernel.config")

CONFIG_PATH_ENV = "CLINIC_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "clinic.yaml"


def get_active_config(path: Path | str | None = None) -> ClinicConfig:
    """Load, validate and return the active configuration.

    Not cached: callers hold the returned object for as long as they need
    a consistent view.
    """
    env_path = os.environ.get(CONFIG_PATH_ENV)
    chosen = Path(path or env_path or DEFAULT_CONFIG_PATH)

    config = load_config_file(chosen)

    _logger.info(
        "CLINIC_CONFIG_TRACE",
        extra={
            "trace_type": "CLINIC_CONFIG_TRACE",
            "config_source": str(chosen),
            "checksum": config.checksum,
            "database_dialect": config.database.url.split(":", 1)[0],
            "reporting_timezone": config.reporting.timezone,
        },
    )
    return config


__all__ = [
    "BookingPolicy",
    "CONFIG_PATH_ENV",
    "ClinicConfig",
    "ConcurrencyPolicy",
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "InventoryPolicy",
    "LoggingConfig",
    "NotificationPolicy",
    "ReportingPolicy",
    "get_active_config",
]
