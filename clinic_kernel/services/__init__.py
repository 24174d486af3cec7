"""Services for the clinic kernel (write side, plus the reporting facade)."""

from clinic_kernel.services.appointment_ledger import AppointmentLedger
from clinic_kernel.services.availability_service import AvailabilityService
from clinic_kernel.services.inventory_reconciler import InventoryReconciler
from clinic_kernel.services.notifications import (
    LoggingNotifier,
    Notifier,
    NullNotifier,
    StatusNotification,
)
from clinic_kernel.services.report_service import (
    OutstandingPayment,
    ReportService,
    StockBoardRow,
)
from clinic_kernel.services.retry import retry_on_conflict

__all__ = [
    "AppointmentLedger",
    "AvailabilityService",
    "InventoryReconciler",
    "LoggingNotifier",
    "Notifier",
    "NullNotifier",
    "OutstandingPayment",
    "ReportService",
    "StatusNotification",
    "StockBoardRow",
    "retry_on_conflict",
]
