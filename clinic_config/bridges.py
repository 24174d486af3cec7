"""
Config → Kernel Bridges.

Functions that turn a ``ClinicConfig`` into configured kernel services.
These live in clinic_config (the producer) because the kernel must NEVER
import clinic_config.

Usage:
    from clinic_config import get_active_config
    from clinic_config.bridges import build_ledger, initialize_runtime

    config = get_active_config()
    initialize_runtime(config)
    with session_scope() as session:
        ledger = build_ledger(config, session)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from clinic_config.schema import ClinicConfig
from clinic_kernel.db.engine import init_engine_from_url
from clinic_kernel.domain.clock import Clock
from clinic_kernel.logging_config import configure_logging
from clinic_kernel.services.appointment_ledger import AppointmentLedger
from clinic_kernel.services.inventory_reconciler import InventoryReconciler
from clinic_kernel.services.notifications import LoggingNotifier, Notifier, NullNotifier
from clinic_kernel.services.report_service import ReportService
from clinic_kernel.services.retry import retry_on_conflict

T = TypeVar("T")


def initialize_runtime(config: ClinicConfig) -> Engine:
    """Configure logging at the configured level, then open the database."""
    configure_logging(level=config.logging.level)
    return init_engine_from_url(config.database.url, echo=config.database.echo)


def build_notifier(config: ClinicConfig) -> Notifier:
    if not config.notifications.enabled:
        return NullNotifier()
    return LoggingNotifier(config.notifications.clinic_name)


def build_reconciler(
    config: ClinicConfig, session: Session, clock: Clock | None = None
) -> InventoryReconciler:
    return InventoryReconciler(
        session,
        clock,
        allow_negative_stock=config.inventory.allow_negative_stock,
    )


def build_ledger(
    config: ClinicConfig,
    session: Session,
    clock: Clock | None = None,
    notifier: Notifier | None = None,
) -> AppointmentLedger:
    """AppointmentLedger wired with the booking, inventory and notification policies."""
    return AppointmentLedger(
        session,
        clock,
        reconciler=build_reconciler(config, session, clock),
        notifier=notifier or build_notifier(config),
        deposit_rate=config.booking.deposit_rate,
        reject_overlapping_bookings=config.booking.reject_overlapping_bookings,
    )


def build_report_service(config: ClinicConfig, session: Session) -> ReportService:
    return ReportService(
        session,
        tz=config.reporting.tzinfo,
        daily_bucket_max_days=config.reporting.daily_bucket_max_days,
        deposit_rate=config.booking.deposit_rate,
        monitor_ratio=config.inventory.monitor_ratio,
        fallback_reorder_threshold=config.inventory.fallback_reorder_threshold,
        fallback_monitor_threshold=config.inventory.fallback_monitor_threshold,
        peak_hours_start=config.reporting.peak_hours_start,
        peak_hours_end=config.reporting.peak_hours_end,
    )


def run_with_retry(config: ClinicConfig, operation: Callable[[Session], T]) -> T:
    """``retry_on_conflict`` with the configured retry budget."""
    return retry_on_conflict(operation, max_retries=config.concurrency.max_retries)
