"""
Module: clinic_engines.revenue
Responsibility:
    Revenue recognition over appointment snapshots.  This is the single
    algorithm every revenue figure goes through: dashboard totals, trend
    charts and period-filtered reports all call ``recognized_revenue``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Input is a sequence of
    ``AppointmentSnapshot`` read by the caller from one snapshot.

Recognition rule:
    An appointment counts when it is approved, has price > 0 and
    ``is_settled``.  Its full price (never a deposit) lands in exactly one
    bucket, dated by the first of:
        1. the remaining-balance confirmation time,
        2. the full-payment confirmation time,
        3. the appointment's own date (records without events).
    Confirmation times are converted to the clinic timezone before the
    calendar day is taken.

Bucketing:
    Calendar days when the period spans at most ``daily_bucket_max_days``
    days (end - start), calendar months otherwise.  Every bucket in the
    period is listed, zero-filled, in chronological order.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from clinic_engines.tracer import traced_engine
from clinic_kernel.domain.appointment import (
    AppointmentSnapshot,
    AppointmentStatus,
    PaymentEventKind,
    is_settled,
)
from clinic_kernel.exceptions import ValidationError

DEFAULT_DAILY_BUCKET_MAX_DAYS = 60


class Granularity(str, Enum):
    DAY = "day"
    MONTH = "month"


@dataclass(frozen=True)
class ReportPeriod:
    """Inclusive calendar-day range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError("Report period ends before it starts", "end")

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def span_days(self) -> int:
        return (self.end - self.start).days

    def granularity(self, daily_bucket_max_days: int = DEFAULT_DAILY_BUCKET_MAX_DAYS) -> Granularity:
        if self.span_days <= daily_bucket_max_days:
            return Granularity.DAY
        return Granularity.MONTH

    @classmethod
    def month(cls, year: int, month: int) -> ReportPeriod:
        first = date(year, month, 1)
        next_first = _next_month(first)
        return cls(first, next_first - timedelta(days=1))


@dataclass(frozen=True)
class RevenuePoint:
    bucket: date
    label: str
    amount: Decimal
    appointments: int


@dataclass(frozen=True)
class RevenueSeries:
    period: ReportPeriod
    granularity: Granularity
    points: tuple[RevenuePoint, ...]

    @property
    def total(self) -> Decimal:
        return sum((p.amount for p in self.points), Decimal("0"))

    def amount_for(self, bucket: date) -> Decimal:
        for point in self.points:
            if point.bucket == bucket:
                return point.amount
        return Decimal("0")


@dataclass(frozen=True)
class ServiceShare:
    service_type: str
    count: int
    percentage: Decimal


def _next_month(first: date) -> date:
    if first.month == 12:
        return date(first.year + 1, 1, 1)
    return date(first.year, first.month + 1, 1)


def _bucket_of(day: date, granularity: Granularity) -> date:
    if granularity is Granularity.MONTH:
        return day.replace(day=1)
    return day


def _buckets(period: ReportPeriod, granularity: Granularity) -> list[date]:
    if granularity is Granularity.DAY:
        return [period.start + timedelta(days=i) for i in range(period.span_days + 1)]
    buckets = []
    current = period.start.replace(day=1)
    while current <= period.end:
        buckets.append(current)
        current = _next_month(current)
    return buckets


def _label(bucket: date, granularity: Granularity) -> str:
    if granularity is Granularity.MONTH:
        return bucket.strftime("%b %Y")
    return f"{bucket:%b} {bucket.day}"


def recognition_date(appointment: AppointmentSnapshot, tz: tzinfo = timezone.utc) -> date:
    """The calendar day an appointment's revenue is recognized on."""
    for kind in (PaymentEventKind.REMAINING_BALANCE, PaymentEventKind.FULL_PAYMENT):
        event = appointment.latest_event(kind)
        if event is not None:
            return event.timestamp.astimezone(tz).date()
    return appointment.date


def is_recognizable(appointment: AppointmentSnapshot) -> bool:
    return (
        appointment.status is AppointmentStatus.APPROVED
        and appointment.price > 0
        and is_settled(appointment)
    )


def _recognized_in(
    appointments: Iterable[AppointmentSnapshot],
    period: ReportPeriod,
    tz: tzinfo,
) -> list[tuple[date, AppointmentSnapshot]]:
    dated = []
    for appointment in appointments:
        if not is_recognizable(appointment):
            continue
        day = recognition_date(appointment, tz)
        if day in period:
            dated.append((day, appointment))
    return dated


@traced_engine("revenue", "1.0", fingerprint_fields=("period", "daily_bucket_max_days"))
def recognized_revenue(
    appointments: Iterable[AppointmentSnapshot],
    *,
    period: ReportPeriod,
    tz: tzinfo = timezone.utc,
    daily_bucket_max_days: int = DEFAULT_DAILY_BUCKET_MAX_DAYS,
) -> RevenueSeries:
    """Recognized revenue per bucket over ``period``."""
    granularity = period.granularity(daily_bucket_max_days)
    amounts: dict[date, Decimal] = {b: Decimal("0") for b in _buckets(period, granularity)}
    counts: Counter[date] = Counter()

    for day, appointment in _recognized_in(appointments, period, tz):
        bucket = _bucket_of(day, granularity)
        amounts[bucket] += appointment.price
        counts[bucket] += 1

    return RevenueSeries(
        period=period,
        granularity=granularity,
        points=tuple(
            RevenuePoint(
                bucket=bucket,
                label=_label(bucket, granularity),
                amount=amount,
                appointments=counts[bucket],
            )
            for bucket, amount in amounts.items()
        ),
    )


@traced_engine("service_distribution", "1.0", fingerprint_fields=("period",))
def service_distribution(
    appointments: Iterable[AppointmentSnapshot],
    *,
    period: ReportPeriod,
    tz: tzinfo = timezone.utc,
) -> tuple[ServiceShare, ...]:
    """Recognized appointments per service, largest first.

    Appointments without a service type are left out of both the counts
    and the percentage base.
    """
    counts: Counter[str] = Counter(
        appointment.service_type
        for _, appointment in _recognized_in(appointments, period, tz)
        if appointment.service_type
    )
    total = sum(counts.values())
    if total == 0:
        return ()

    return tuple(
        ServiceShare(
            service_type=service_type,
            count=count,
            percentage=(Decimal(count) * 100 / Decimal(total)).quantize(
                Decimal("0.1"), rounding=ROUND_HALF_UP
            ),
        )
        for service_type, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    )
