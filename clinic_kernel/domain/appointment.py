"""
Appointment domain types (``clinic_kernel.domain.appointment``).

Responsibility
--------------
Pure value objects for the appointment lifecycle: the status and payment
state machines, typed payment events, the booking request, and the
read-side ``AppointmentSnapshot`` consumed by every report.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  No imports from ``db/``,
``models/``, ``services/`` or ``selectors/``.

Invariants enforced
-------------------
* ``APPOINTMENT_TRANSITIONS`` is the only source of legal status moves.
  Terminal statuses have no outgoing edges.
* ``PAYMENT_TRANSITIONS`` never allows a regression.  Payment state may
  only be set while the appointment is approved.
* Payment events are typed and append-only; the event kind is derived
  from the payment move, never supplied by the caller.
* ``is_settled`` is the single definition of "fully paid" used by
  revenue, outstanding-balance and any other derivation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

from clinic_kernel.domain.consumption import ConsumptionLineRecord
from clinic_kernel.exceptions import ValidationError


# =========================================================================
# Appointment status lifecycle
# =========================================================================


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.APPROVED,
        AppointmentStatus.REJECTED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.APPROVED: frozenset({
        AppointmentStatus.CANCELLED,
        AppointmentStatus.RESCHEDULED,
    }),
    AppointmentStatus.REJECTED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.RESCHEDULED: frozenset(),
}

TERMINAL_APPOINTMENT_STATUSES: frozenset[AppointmentStatus] = frozenset(
    status for status, targets in APPOINTMENT_TRANSITIONS.items() if not targets
)

# Bookings that still hold their slot.
ACTIVE_APPOINTMENT_STATUSES: frozenset[AppointmentStatus] = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.APPROVED,
})


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in APPOINTMENT_TRANSITIONS[current]


# =========================================================================
# Payment sub-state
# =========================================================================


class PaymentStatus(str, Enum):
    PENDING = "pending"
    DOWN_PAYMENT_PAID = "down_payment_paid"
    FULLY_PAID = "fully_paid"


# ``None`` is the absent state: no payment workflow started yet.
PAYMENT_TRANSITIONS: dict[PaymentStatus | None, frozenset[PaymentStatus]] = {
    None: frozenset({
        PaymentStatus.PENDING,
        PaymentStatus.DOWN_PAYMENT_PAID,
        PaymentStatus.FULLY_PAID,
    }),
    PaymentStatus.PENDING: frozenset({
        PaymentStatus.DOWN_PAYMENT_PAID,
        PaymentStatus.FULLY_PAID,
    }),
    PaymentStatus.DOWN_PAYMENT_PAID: frozenset({PaymentStatus.FULLY_PAID}),
    PaymentStatus.FULLY_PAID: frozenset(),
}


class PaymentEventKind(str, Enum):
    DEPOSIT = "deposit"
    FULL_PAYMENT = "full_payment"
    REMAINING_BALANCE = "remaining_balance"


class PaymentMethod(str, Enum):
    ONLINE = "online"
    GCASH = "gcash"
    PAYMAYA = "paymaya"
    AT_CLINIC = "at_clinic"


SETTLING_EVENT_KINDS: frozenset[PaymentEventKind] = frozenset({
    PaymentEventKind.FULL_PAYMENT,
    PaymentEventKind.REMAINING_BALANCE,
})


def payment_event_kind(
    current: PaymentStatus | None, target: PaymentStatus
) -> PaymentEventKind | None:
    """The event a legal payment move records, or None for a move into pending."""
    if target is PaymentStatus.DOWN_PAYMENT_PAID:
        return PaymentEventKind.DEPOSIT
    if target is PaymentStatus.FULLY_PAID:
        if current is PaymentStatus.DOWN_PAYMENT_PAID:
            return PaymentEventKind.REMAINING_BALANCE
        return PaymentEventKind.FULL_PAYMENT
    return None


def deposit_split(price: Decimal, deposit_rate: Decimal) -> tuple[Decimal, Decimal]:
    """Split a price into (deposit, remaining balance).

    The deposit is rounded half-up to whole currency units; the remainder
    absorbs the rounding so both parts always sum to ``price``.
    """
    deposit = (price * deposit_rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return deposit, price - deposit


@dataclass(frozen=True)
class PaymentConfirmation:
    """What staff supply when recording a payment.

    ``confirmed_at`` defaults to the ledger's clock when omitted.
    """

    method: PaymentMethod
    confirmed_at: datetime | None = None
    amount: Decimal | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.method, PaymentMethod):
            try:
                object.__setattr__(self, "method", PaymentMethod(self.method))
            except ValueError as exc:
                raise ValidationError(
                    f"Unknown payment method: {self.method!r}", "method"
                ) from exc
        if self.confirmed_at is not None and self.confirmed_at.tzinfo is None:
            raise ValidationError("confirmed_at must be timezone-aware", "confirmed_at")
        if self.amount is not None and self.amount < 0:
            raise ValidationError("Payment amount cannot be negative", "amount")


@dataclass(frozen=True)
class PaymentEvent:
    kind: PaymentEventKind
    timestamp: datetime
    method: PaymentMethod
    amount: Decimal | None = None
    confirmed_by: str | None = None


# =========================================================================
# Booking request
# =========================================================================


_REQUIRED_TEXT_FIELDS = ("pet_name", "owner_name", "phone", "email", "staff_member")


@dataclass(frozen=True)
class BookingRequest:
    """A request to book one slot with one staff member."""

    pet_name: str
    owner_name: str
    phone: str
    email: str
    date: date
    time: time
    staff_member: str
    price: Decimal = Decimal("0")
    service_type: str | None = None
    reason: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        for name in _REQUIRED_TEXT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{name} is required", name)
        if "@" not in self.email:
            raise ValidationError(f"Invalid email: {self.email!r}", "email")
        if not isinstance(self.date, date) or isinstance(self.date, datetime):
            raise ValidationError("date must be a calendar date", "date")
        if not isinstance(self.time, time):
            raise ValidationError("time must be a time of day", "time")
        if not isinstance(self.price, Decimal):
            object.__setattr__(self, "price", Decimal(str(self.price)))
        if self.price < 0:
            raise ValidationError("price cannot be negative", "price")


# =========================================================================
# Read-side snapshot
# =========================================================================


@dataclass(frozen=True)
class AppointmentSnapshot:
    """Immutable view of one appointment as persisted."""

    id: UUID
    pet_name: str
    owner_name: str
    phone: str
    email: str
    date: date
    time: time
    staff_member: str
    status: AppointmentStatus
    price: Decimal
    created_at: datetime
    payment_status: PaymentStatus | None = None
    service_type: str | None = None
    reason: str | None = None
    notes: str | None = None
    status_reason: str | None = None
    rescheduled_from_id: UUID | None = None
    payment_events: tuple[PaymentEvent, ...] = ()
    consumption_lines: tuple[ConsumptionLineRecord, ...] = field(default=())

    def latest_event(self, kind: PaymentEventKind) -> PaymentEvent | None:
        matching = [e for e in self.payment_events if e.kind is kind]
        if not matching:
            return None
        return max(matching, key=lambda e: e.timestamp)


def is_settled(appointment: AppointmentSnapshot) -> bool:
    """Fully paid: by status, or by a recorded settling event."""
    if appointment.payment_status is PaymentStatus.FULLY_PAID:
        return True
    return any(e.kind in SETTLING_EVENT_KINDS for e in appointment.payment_events)


def deposit_paid(appointment: AppointmentSnapshot) -> Decimal | None:
    """Sum of recorded deposit amounts, or None when no deposit was recorded."""
    amounts = [
        e.amount for e in appointment.payment_events
        if e.kind is PaymentEventKind.DEPOSIT and e.amount is not None
    ]
    if not amounts:
        return None
    return sum(amounts, Decimal("0"))


@dataclass(frozen=True)
class StatusChange:
    """One recorded status transition."""

    appointment_id: UUID
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    actor: str
    changed_at: datetime
    reason: str | None = None
