"""
Configuration Loader (``clinic_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into the frozen ``clinic_config.schema``
dataclasses.  Callers use ``clinic_config.get_active_config()``; this
module is its internal machinery.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError``; a typo never silently
  falls back to a default.
* Every value is type-checked and range-checked.
* ``compute_checksum`` is deterministic for identical parsed data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad section/key/value  -> ``ValueError`` naming the offending path.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

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

_SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "logging": LoggingConfig,
    "booking": BookingPolicy,
    "inventory": InventoryPolicy,
    "reporting": ReportingPolicy,
    "concurrency": ConcurrencyPolicy,
    "notifications": NotificationPolicy,
}

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields ``{}``."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _coerce(section: str, key: str, value: Any, default: Any) -> Any:
    path = f"{section}.{key}"
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{path} must be true or false, got {value!r}")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{path} must be an integer, got {value!r}")
        return value
    if isinstance(default, Decimal):
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{path} must be a number, got {value!r}") from exc
    if isinstance(default, str):
        if not isinstance(value, str):
            raise ValueError(f"{path} must be a string, got {value!r}")
        return value
    return value


def _parse_section(section: str, cls: type, raw: Any) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{section}' must be a mapping")
    defaults = cls()
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {sorted(unknown)}")
    values = {
        key: _coerce(section, key, value, getattr(defaults, key))
        for key, value in raw.items()
    }
    return cls(**values)


def _validate(config: ClinicConfig) -> None:
    errors: list[str] = []

    if config.logging.level.upper() not in _LOG_LEVELS:
        errors.append(f"logging.level: unknown level {config.logging.level!r}")

    if not Decimal("0") <= config.booking.deposit_rate <= Decimal("1"):
        errors.append("booking.deposit_rate must be between 0 and 1")

    inv = config.inventory
    if inv.monitor_ratio < 1:
        errors.append("inventory.monitor_ratio must be at least 1")
    if not 0 <= inv.fallback_reorder_threshold <= inv.fallback_monitor_threshold:
        errors.append(
            "inventory.fallback_reorder_threshold must be between 0 and "
            "fallback_monitor_threshold"
        )

    rep = config.reporting
    if rep.daily_bucket_max_days < 0:
        errors.append("reporting.daily_bucket_max_days cannot be negative")
    if not 0 <= rep.peak_hours_start <= rep.peak_hours_end <= 23:
        errors.append("reporting.peak_hours_start/end must satisfy 0 <= start <= end <= 23")
    if rep.timezone != "UTC":
        try:
            ZoneInfo(rep.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"reporting.timezone: unknown zone {rep.timezone!r}")

    if config.concurrency.max_retries < 0:
        errors.append("concurrency.max_retries cannot be negative")

    if errors:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any], source: str | None = None) -> ClinicConfig:
    """Build and validate a ClinicConfig from already-loaded YAML data."""
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

    sections = {
        name: _parse_section(name, cls, data.get(name))
        for name, cls in _SECTIONS.items()
    }
    config = ClinicConfig(
        **sections,
        source=source,
        checksum=compute_checksum(data),
    )
    _validate(config)
    return config


def load_config_file(path: Path) -> ClinicConfig:
    return parse_config(load_yaml_file(path), source=str(path))
