"""
Consumption line types (``clinic_kernel.domain.consumption``).

A consumption line is one inventory item and quantity logged against an
appointment.  It waits for staff approval before it affects stock:

    pending -> confirmed   (stock decremented once, approver stamped)
    pending -> rejected    (reason stamped, stock untouched)

Confirmed and rejected are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class DeductionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


DEDUCTION_TRANSITIONS: dict[DeductionStatus, frozenset[DeductionStatus]] = {
    DeductionStatus.PENDING: frozenset({
        DeductionStatus.CONFIRMED,
        DeductionStatus.REJECTED,
    }),
    DeductionStatus.CONFIRMED: frozenset(),
    DeductionStatus.REJECTED: frozenset(),
}


class LineDecision(str, Enum):
    CONFIRM = "confirm"
    REJECT = "reject"


@dataclass(frozen=True)
class ConsumptionLineRecord:
    id: UUID
    appointment_id: UUID
    item_id: UUID
    item_name: str
    category: str
    quantity: int
    deduction_status: DeductionStatus
    logged_at: datetime
    logged_by: str
    rejection_reason: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None


@dataclass(frozen=True)
class UsageRecord:
    """One confirmed usage, dated by the appointment it was logged against.

    This is the history ConsumptionForecaster reads.
    """

    item_name: str
    quantity: int
    used_on: date
