"""
Clinic configuration schema.

Frozen dataclasses parsed from YAML by ``clinic_config.loader``.  Defaults
here match ``defaults/clinic.yaml`` so a partial file only needs to name
what it overrides.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from decimal import Decimal
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///clinic.db"
    echo: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class BookingPolicy:
    """Booking and payment rules."""

    deposit_rate: Decimal = Decimal("0.30")
    # False keeps same-slot double bookings, flagged for staff review
    reject_overlapping_bookings: bool = False


@dataclass(frozen=True)
class InventoryPolicy:
    allow_negative_stock: bool = False
    monitor_ratio: Decimal = Decimal("1.2")
    fallback_reorder_threshold: int = 10
    fallback_monitor_threshold: int = 20


@dataclass(frozen=True)
class ReportingPolicy:
    timezone: str = "UTC"
    daily_bucket_max_days: int = 60
    peak_hours_start: int = 9
    peak_hours_end: int = 18

    @property
    def tzinfo(self) -> tzinfo:
        if self.timezone == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class ConcurrencyPolicy:
    max_retries: int = 3


@dataclass(frozen=True)
class NotificationPolicy:
    clinic_name: str = "FURSURE Veterinary Clinic"
    enabled: bool = True


@dataclass(frozen=True)
class ClinicConfig:
    """The full runtime configuration.  ``checksum`` identifies the source."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    booking: BookingPolicy = field(default_factory=BookingPolicy)
    inventory: InventoryPolicy = field(default_factory=InventoryPolicy)
    reporting: ReportingPolicy = field(default_factory=ReportingPolicy)
    concurrency: ConcurrencyPolicy = field(default_factory=ConcurrencyPolicy)
    notifications: NotificationPolicy = field(default_factory=NotificationPolicy)
    source: str | None = None
    checksum: str | None = None
