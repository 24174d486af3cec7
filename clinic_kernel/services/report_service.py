"""
clinic_kernel.services.report_service -- reporting facade.

Responsibility:
    Reads appointment snapshots and inventory state through the selectors
    and hands them to the pure engines, so every report (revenue series,
    service mix, peak hours, ADU, stockout forecast, stock board,
    outstanding payments) is computed by one shared algorithm.

Architecture position:
    Kernel > Services.  Read-only: never flushes, never mutates.

Invariants enforced:
    - Revenue is recognized only through clinic_engines.revenue, keyed by
      payment event timestamps in the clinic timezone.
    - Outstanding balances use ``is_settled`` and the deposits actually
      recorded; ``deposit_split`` with the configured rate only fills in
      the deposit still expected when none was recorded.

Failure modes:
    - AccessDeniedError: owners may not read clinic-wide reports.
    - InventoryItemNotFoundError: unknown item id on ``forecast``.
    - InsufficientDataError: forecast for an item with no confirmed usage.

Usage:
    reports = ReportService(session, tz=config.reporting.tzinfo)
    series = reports.revenue(ReportPeriod.month(2024, 3), access)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timezone, tzinfo
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from clinic_engines.forecast import (
    DEFAULT_FALLBACK_MONITOR_THRESHOLD,
    DEFAULT_FALLBACK_REORDER_THRESHOLD,
    DEFAULT_MONITOR_RATIO,
    AduRow,
    StockoutProjection,
    adu_table,
    average_daily_use,
    classify_stock,
    reorder_quantity,
    stockout_projection,
)
from clinic_engines.peak_hours import PeakHoursGrid, peak_hours
from clinic_engines.revenue import (
    DEFAULT_DAILY_BUCKET_MAX_DAYS,
    ReportPeriod,
    RevenueSeries,
    ServiceShare,
    recognized_revenue,
    service_distribution,
)
from clinic_kernel.domain.access import CLINIC_ROLES, AccessContext
from clinic_kernel.domain.appointment import (
    AppointmentStatus,
    PaymentStatus,
    deposit_paid,
    deposit_split,
    is_settled,
)
from clinic_kernel.domain.inventory import StockStatus
from clinic_kernel.logging_config import get_logger
from clinic_kernel.selectors.appointment_selector import AppointmentSelector
from clinic_kernel.selectors.inventory_selector import InventorySelector

logger = get_logger("services.reports")

@dataclass(frozen=True)
class OutstandingPayment:
    """An approved appointment that still owes money."""

    appointment_id: UUID
    display_number: str
    owner_name: str
    pet_name: str
    date: date
    time: time
    price: Decimal
    payment_status: PaymentStatus | None
    deposit_amount: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class StockBoardRow:
    item_id: UUID
    item_name: str
    category: str
    stock: int
    reorder_point: int
    status: StockStatus
    reorder_quantity: int


class ReportService:
    """Clinic-wide reports over ledger and inventory state."""

    def __init__(
        self,
        session: Session,
        *,
        tz: tzinfo = timezone.utc,
        daily_bucket_max_days: int = DEFAULT_DAILY_BUCKET_MAX_DAYS,
        deposit_rate: Decimal = Decimal("0.30"),
        monitor_ratio: Decimal = DEFAULT_MONITOR_RATIO,
        fallback_reorder_threshold: int = DEFAULT_FALLBACK_REORDER_THRESHOLD,
        fallback_monitor_threshold: int = DEFAULT_FALLBACK_MONITOR_THRESHOLD,
        peak_hours_start: int = 9,
        peak_hours_end: int = 18,
    ):
        self.session = session
        self.tz = tz
        self.daily_bucket_max_days = daily_bucket_max_days
        self.deposit_rate = deposit_rate
        self.monitor_ratio = monitor_ratio
        self.fallback_reorder_threshold = fallback_reorder_threshold
        self.fallback_monitor_threshold = fallback_monitor_threshold
        self.peak_hours_start = peak_hours_start
        self.peak_hours_end = peak_hours_end
        self._appointments = AppointmentSelector(session)
        self._inventory = InventorySelector(session)

    # ------------------------------------------------------------------
    # Revenue
    # ------------------------------------------------------------------

    def revenue(self, period: ReportPeriod, access: AccessContext) -> RevenueSeries:
        """Recognized revenue over ``period``, bucketed by day or month.

        Recognition can fall after the appointment date (a late remaining
        balance), so every appointment is considered, not only those dated
        inside the period.
        """
        access.require_role(CLINIC_ROLES, "view revenue")
        series = recognized_revenue(
            self._appointments.list_every(),
            period=period,
            tz=self.tz,
            daily_bucket_max_days=self.daily_bucket_max_days,
        )
        logger.info(
            "revenue_report_built",
            extra={
                "period_start": period.start,
                "period_end": period.end,
                "granularity": series.granularity.value,
                "total": series.total,
            },
        )
        return series

    def service_distribution(
        self, period: ReportPeriod, access: AccessContext
    ) -> tuple[ServiceShare, ...]:
        access.require_role(CLINIC_ROLES, "view service distribution")
        return service_distribution(
            self._appointments.list_every(), period=period, tz=self.tz,
        )

    def peak_hours(self, access: AccessContext) -> PeakHoursGrid:
        access.require_role(CLINIC_ROLES, "view peak hours")
        return peak_hours(
            self._appointments.list_every(),
            start_hour=self.peak_hours_start,
            end_hour=self.peak_hours_end,
        )

    def outstanding_payments(self, access: AccessContext) -> list[OutstandingPayment]:
        """Approved, priced appointments not yet fully paid, in date order."""
        access.require_role(CLINIC_ROLES, "view outstanding payments")
        numbers = self._appointments.display_numbers()
        rows = []
        for appointment in self._appointments.list_every():
            if appointment.status is not AppointmentStatus.APPROVED:
                continue
            if appointment.price <= 0 or is_settled(appointment):
                continue
            deposit = deposit_paid(appointment)
            if deposit is None:
                deposit, remaining = deposit_split(appointment.price, self.deposit_rate)
            else:
                remaining = appointment.price - deposit
            rows.append(
                OutstandingPayment(
                    appointment_id=appointment.id,
                    display_number=numbers[appointment.id],
                    owner_name=appointment.owner_name,
                    pet_name=appointment.pet_name,
                    date=appointment.date,
                    time=appointment.time,
                    price=appointment.price,
                    payment_status=appointment.payment_status,
                    deposit_amount=deposit,
                    remaining_balance=remaining,
                )
            )
        return rows

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def adu_table(self, access: AccessContext) -> tuple[AduRow, ...]:
        access.require_role(CLINIC_ROLES, "view usage")
        return adu_table(self._inventory.list_items(), self._appointments.confirmed_usage())

    def forecast(self, item_id: UUID, access: AccessContext) -> StockoutProjection:
        """Stockout projection for one item from its confirmed usage.

        Raises:
            InsufficientDataError: the item has no confirmed usage.
        """
        access.require_role(CLINIC_ROLES, "view forecast")
        item = self._inventory.get_item(item_id)
        adu = average_daily_use(self._appointments.confirmed_usage(item.name), item.name)
        projection = stockout_projection(
            item,
            adu=adu,
            monitor_ratio=self.monitor_ratio,
            fallback_reorder_threshold=self.fallback_reorder_threshold,
            fallback_monitor_threshold=self.fallback_monitor_threshold,
        )
        logger.info(
            "stockout_forecast_built",
            extra={
                "item_id": str(item.id),
                "item_name": item.name,
                "average_daily_use": adu,
                "days_until_stockout": projection.days_until_stockout,
                "stock_status": projection.status.value,
            },
        )
        return projection

    def stock_status_board(self, access: AccessContext) -> list[StockBoardRow]:
        """Every item with a reorder point, with its classification."""
        access.require_role(CLINIC_ROLES, "view stock status")
        return [
            StockBoardRow(
                item_id=item.id,
                item_name=item.name,
                category=item.category,
                stock=item.stock,
                reorder_point=item.reorder_point,
                status=classify_stock(
                    item.stock,
                    item.reorder_point,
                    monitor_ratio=self.monitor_ratio,
                    fallback_reorder_threshold=self.fallback_reorder_threshold,
                    fallback_monitor_threshold=self.fallback_monitor_threshold,
                ),
                reorder_quantity=reorder_quantity(item),
            )
            for item in self._inventory.list_items()
            if item.reorder_point is not None
        ]
