"""
Module: clinic_engines
Responsibility:
    Re-exports the pure calculation engines.  Higher layers (the reporting
    service, the appointment ledger) import from here.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import
    clinic_kernel.domain and clinic_kernel.exceptions only.

Invariants enforced:
    - Purity: engines never read the clock.  Dates, timezones and
      snapshots are passed in by the caller.
    - Decimal-only arithmetic for money and ADU.
    - Determinism: identical inputs give identical outputs, and every
      traced call logs the same input fingerprint.
"""

from clinic_engines.availability import (
    BookingCheck,
    available_slots,
    generate_slots,
    validate_booking,
)
from clinic_engines.forecast import (
    AduRow,
    ProjectionPoint,
    StockoutProjection,
    adu_table,
    average_daily_use,
    classify_stock,
    reorder_quantity,
    stockout_projection,
)
from clinic_engines.peak_hours import HEATMAP_DAYS, PeakHoursGrid, peak_hours
from clinic_engines.revenue import (
    Granularity,
    ReportPeriod,
    RevenuePoint,
    RevenueSeries,
    ServiceShare,
    is_recognizable,
    recognition_date,
    recognized_revenue,
    service_distribution,
)
from clinic_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "AduRow",
    "BookingCheck",
    "Granularity",
    "HEATMAP_DAYS",
    "PeakHoursGrid",
    "ProjectionPoint",
    "ReportPeriod",
    "RevenuePoint",
    "RevenueSeries",
    "ServiceShare",
    "StockoutProjection",
    "adu_table",
    "available_slots",
    "average_daily_use",
    "classify_stock",
    "compute_input_fingerprint",
    "generate_slots",
    "is_recognizable",
    "peak_hours",
    "recognition_date",
    "recognized_revenue",
    "reorder_quantity",
    "service_distribution",
    "stockout_projection",
    "traced_engine",
]
