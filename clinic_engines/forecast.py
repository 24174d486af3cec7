"""
Module: clinic_engines.forecast
Responsibility:
    Consumption forecasting: average daily use (ADU) from confirmed usage
    history, stockout projection, and stock status classification.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  History arrives as
    ``UsageRecord`` values (confirmed lines only, dated by appointment).

Definitions:
    ADU = total confirmed quantity / number of distinct dates with
    confirmed usage.  Idle calendar days do not dilute it.  No history
    means ADU 0, never a division by zero.

    Projection for stock S and ADU a: day d (d = 0 is today) holds
    max(0, S - a*d); days until stockout = ceil(S / a); the series runs
    from day 0 to that day inclusive.

Failure modes:
    - InsufficientDataError from ``stockout_projection`` when a <= 0.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from clinic_engines.tracer import traced_engine
from clinic_kernel.domain.consumption import UsageRecord
from clinic_kernel.domain.inventory import InventoryItemInfo, StockStatus
from clinic_kernel.exceptions import InsufficientDataError

DEFAULT_MONITOR_RATIO = Decimal("1.2")
DEFAULT_FALLBACK_REORDER_THRESHOLD = 10
DEFAULT_FALLBACK_MONITOR_THRESHOLD = 20

_ZERO = Decimal("0")
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ProjectionPoint:
    day: int
    projected_stock: Decimal


@dataclass(frozen=True)
class StockoutProjection:
    item_name: str
    current_stock: int
    average_daily_use: Decimal
    days_until_stockout: int
    points: tuple[ProjectionPoint, ...]
    reorder_point: int | None
    safety_stock: int | None
    status: StockStatus


@dataclass(frozen=True)
class AduRow:
    item_name: str
    category: str
    stock: int
    average_daily_use: Decimal


def average_daily_use(history: Iterable[UsageRecord], item_name: str) -> Decimal:
    """Unrounded ADU for ``item_name``; ``Decimal("0")`` without history."""
    total = 0
    days = set()
    for usage in history:
        if usage.item_name != item_name:
            continue
        total += usage.quantity
        days.add(usage.used_on)
    if not days:
        return _ZERO
    return Decimal(total) / Decimal(len(days))


def classify_stock(
    stock: int,
    reorder_point: int | None,
    *,
    monitor_ratio: Decimal = DEFAULT_MONITOR_RATIO,
    fallback_reorder_threshold: int = DEFAULT_FALLBACK_REORDER_THRESHOLD,
    fallback_monitor_threshold: int = DEFAULT_FALLBACK_MONITOR_THRESHOLD,
) -> StockStatus:
    """Reorder Now / Monitor / Safe.

    With a reorder point: S <= ROP, ROP < S <= ratio * ROP, else Safe.
    Without one, fixed thresholds apply: S < reorder threshold, S < monitor
    threshold, else Safe.
    """
    if reorder_point is None:
        if stock < fallback_reorder_threshold:
            return StockStatus.REORDER_NOW
        if stock < fallback_monitor_threshold:
            return StockStatus.MONITOR
        return StockStatus.SAFE

    if stock <= reorder_point:
        return StockStatus.REORDER_NOW
    if Decimal(stock) <= Decimal(reorder_point) * monitor_ratio:
        return StockStatus.MONITOR
    return StockStatus.SAFE


@traced_engine("stockout_projection", "1.0", fingerprint_fields=("adu",))
def stockout_projection(
    item: InventoryItemInfo,
    *,
    adu: Decimal,
    monitor_ratio: Decimal = DEFAULT_MONITOR_RATIO,
    fallback_reorder_threshold: int = DEFAULT_FALLBACK_REORDER_THRESHOLD,
    fallback_monitor_threshold: int = DEFAULT_FALLBACK_MONITOR_THRESHOLD,
) -> StockoutProjection:
    """Project ``item``'s stock forward until it runs out.

    Raises:
        InsufficientDataError: ``adu`` is zero or negative.
    """
    if adu <= 0:
        raise InsufficientDataError(item.name)

    stock = Decimal(max(item.stock, 0))
    days = int((stock / adu).to_integral_value(rounding=ROUND_CEILING))
    points = tuple(
        ProjectionPoint(day=d, projected_stock=max(_ZERO, stock - adu * d))
        for d in range(days + 1)
    )
    return StockoutProjection(
        item_name=item.name,
        current_stock=item.stock,
        average_daily_use=adu,
        days_until_stockout=days,
        points=points,
        reorder_point=item.reorder_point,
        safety_stock=item.safety_stock,
        status=classify_stock(
            item.stock,
            item.reorder_point,
            monitor_ratio=monitor_ratio,
            fallback_reorder_threshold=fallback_reorder_threshold,
            fallback_monitor_threshold=fallback_monitor_threshold,
        ),
    )


@traced_engine("adu_table", "1.0")
def adu_table(
    items: Iterable[InventoryItemInfo],
    history: Iterable[UsageRecord],
) -> tuple[AduRow, ...]:
    """ADU for every item, rounded to cents, sorted by item name.

    Items never used appear with ADU 0.
    """
    usage = list(history)
    return tuple(
        AduRow(
            item_name=item.name,
            category=item.category,
            stock=item.stock,
            average_daily_use=average_daily_use(usage, item.name).quantize(
                _CENTS, rounding=ROUND_HALF_UP
            ),
        )
        for item in sorted(items, key=lambda i: i.name)
    )


def reorder_quantity(item: InventoryItemInfo) -> int:
    """Units needed to bring stock back up to the item's target level."""
    if item.target_level is None:
        return 0
    return max(0, item.target_level - item.stock)
