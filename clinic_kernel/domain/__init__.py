"""
Pure domain layer.

Value objects, state machine tables and policy predicates with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (the Clock is injected, never read ambiently)
"""

from clinic_kernel.domain.access import AccessContext, Role
from clinic_kernel.domain.appointment import (
    ACTIVE_APPOINTMENT_STATUSES,
    APPOINTMENT_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    AppointmentSnapshot,
    AppointmentStatus,
    BookingRequest,
    PaymentConfirmation,
    PaymentEvent,
    PaymentEventKind,
    PaymentMethod,
    PaymentStatus,
    StatusChange,
    deposit_paid,
    is_settled,
)
from clinic_kernel.domain.availability import AvailabilityProfile, LunchWindow
from clinic_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from clinic_kernel.domain.consumption import (
    DEDUCTION_TRANSITIONS,
    ConsumptionLineRecord,
    DeductionStatus,
    LineDecision,
    UsageRecord,
)
from clinic_kernel.domain.inventory import InventoryItemInfo, StockStatus

__all__ = [
    "ACTIVE_APPOINTMENT_STATUSES",
    "APPOINTMENT_TRANSITIONS",
    "AccessContext",
    "AppointmentSnapshot",
    "AppointmentStatus",
    "AvailabilityProfile",
    "BookingRequest",
    "Clock",
    "ConsumptionLineRecord",
    "DEDUCTION_TRANSITIONS",
    "DeductionStatus",
    "DeterministicClock",
    "InventoryItemInfo",
    "LineDecision",
    "LunchWindow",
    "PAYMENT_TRANSITIONS",
    "PaymentConfirmation",
    "PaymentEvent",
    "PaymentEventKind",
    "PaymentMethod",
    "PaymentStatus",
    "Role",
    "StatusChange",
    "StockStatus",
    "SystemClock",
    "UsageRecord",
    "deposit_paid",
    "is_settled",
]
