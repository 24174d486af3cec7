"""
clinic_kernel.services.appointment_ledger -- appointment system of record.

Responsibility:
    Creates appointments, moves them through the status and payment state
    machines, records payment events and status history, and routes
    consumption logging/decisions to the InventoryReconciler.  Read
    operations are filtered by the caller's AccessContext.

Architecture position:
    Kernel > Services.  Consults the pure availability engine on booking
    and reschedule; never calls reporting.

Invariants enforced:
    - Status moves follow APPOINTMENT_TRANSITIONS only; anything else raises
      InvalidTransitionError and leaves the record unchanged.
    - Payment moves follow PAYMENT_TRANSITIONS, only while approved, and
      never regress.  The payment event kind is derived from the move.
    - Reschedule marks the old record terminal and creates a new pending
      record linked back to it; the original slot is never overwritten.
    - Cancelling or rejecting never reverses confirmed consumption lines.
    - Every status move writes a StatusChange row.

Failure modes:
    - ValidationError, SlotUnavailableError on create/reschedule.
    - InvalidTransitionError on illegal status or payment moves.
    - AppointmentNotFoundError for unknown ids, or ids the caller may not see.
    - AccessDeniedError when the caller's role may not perform the action.
    - ConcurrencyConflictError when another session updated the record first.
"""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from clinic_engines.availability import validate_booking
from clinic_kernel.domain.access import CLINIC_ROLES, AccessContext
from clinic_kernel.domain.appointment import (
    APPOINTMENT_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    AppointmentSnapshot,
    AppointmentStatus,
    BookingRequest,
    PaymentConfirmation,
    PaymentEventKind,
    PaymentStatus,
    StatusChange,
    deposit_split,
    payment_event_kind,
)
from clinic_kernel.domain.availability import parse_clock_time
from clinic_kernel.domain.clock import Clock
from clinic_kernel.domain.consumption import ConsumptionLineRecord, LineDecision
from clinic_kernel.exceptions import (
    AccessDeniedError,
    AppointmentNotFoundError,
    ConsumptionLineNotFoundError,
    InvalidTransitionError,
    ValidationError,
)
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_kernel.models.appointment import (
    AppointmentModel,
    PaymentEventModel,
    StatusChangeModel,
)
from clinic_kernel.selectors.appointment_selector import AppointmentSelector
from clinic_kernel.selectors.inventory_selector import InventorySelector
from clinic_kernel.services.availability_service import AvailabilityService
from clinic_kernel.services.base import BaseService
from clinic_kernel.services.inventory_reconciler import InventoryReconciler
from clinic_kernel.services.notifications import (
    LoggingNotifier,
    Notifier,
    StatusNotification,
)

logger = get_logger("services.appointment_ledger")

DEFAULT_DEPOSIT_RATE = Decimal("0.30")


class AppointmentLedger(BaseService):
    """Appointment lifecycle: booking, status, payment and consumption routing."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        reconciler: InventoryReconciler | None = None,
        notifier: Notifier | None = None,
        deposit_rate: Decimal = DEFAULT_DEPOSIT_RATE,
        reject_overlapping_bookings: bool = False,
    ):
        super().__init__(session, clock)
        self.reconciler = reconciler or InventoryReconciler(session, self.clock)
        self.notifier = notifier or LoggingNotifier()
        self.deposit_rate = deposit_rate
        self.reject_overlapping_bookings = reject_overlapping_bookings
        self._availability = AvailabilityService(session, self.clock)
        self._appointments = AppointmentSelector(session)
        self._inventory = InventorySelector(session)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, appointment_id: UUID, access: AccessContext) -> AppointmentModel:
        model = self.session.get(AppointmentModel, appointment_id)
        if model is None or not access.can_view(model.email):
            raise AppointmentNotFoundError(str(appointment_id))
        return model

    def _bind(self, access: AccessContext, appointment_id: UUID | None = None):
        return LogContext.bind(
            actor_id=access.identity,
            actor_role=access.role.value,
            appointment_id=appointment_id,
        )

    def _check_slot(
        self,
        staff_member: str,
        day: date,
        at: time,
        exclude_id: UUID | None = None,
    ):
        profile = self._availability.get_profile(staff_member)
        existing = self._appointments.active_booking_times(staff_member, day, exclude_id)
        return validate_booking(
            profile,
            day=day,
            at=at,
            existing=existing,
            reject_double_booking=self.reject_overlapping_bookings,
        )

    def _record_status(
        self,
        model: AppointmentModel,
        target: AppointmentStatus,
        access: AccessContext,
        reason: str | None,
    ) -> AppointmentStatus:
        current = model.status_enum
        if target not in APPOINTMENT_TRANSITIONS[current]:
            raise InvalidTransitionError(
                "appointment_status", str(model.id), current.value, target.value,
            )
        model.status = target.value
        model.status_reason = reason
        self.session.add(
            StatusChangeModel(
                id=uuid4(),
                appointment_id=model.id,
                from_status=current.value,
                to_status=target.value,
                actor=access.identity,
                reason=reason,
                changed_at=self.clock.now(),
            )
        )
        return current

    def _notify(
        self,
        model: AppointmentModel,
        reason: str | None,
        new_date: date | None = None,
        new_time: time | None = None,
    ) -> None:
        self.notifier.notify(
            StatusNotification(
                appointment_id=model.id,
                recipient=model.email,
                owner_name=model.owner_name,
                pet_name=model.pet_name,
                status=model.status_enum,
                date=model.appointment_date,
                time=model.appointment_time,
                staff_member=model.staff_member,
                reason=reason,
                new_date=new_date,
                new_time=new_time,
            )
        )

    def _default_amount(self, model: AppointmentModel, kind: PaymentEventKind) -> Decimal:
        deposit, remaining = deposit_split(model.price, self.deposit_rate)
        if kind is PaymentEventKind.DEPOSIT:
            return deposit
        if kind is PaymentEventKind.FULL_PAYMENT:
            return model.price
        paid = [
            e.amount for e in model.payment_events
            if e.kind == PaymentEventKind.DEPOSIT.value and e.amount is not None
        ]
        if paid:
            return model.price - sum(paid, Decimal("0"))
        return remaining

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def create(self, request: BookingRequest, access: AccessContext) -> UUID:
        """Book a slot.  Returns the new appointment's id.

        Same-slot double bookings are accepted and logged as
        ``booking_overlaps_existing`` unless the ledger was built with
        ``reject_overlapping_bookings``.
        """
        access.require_owner_of(request.email, "book for another owner")

        at = request.time
        with self._bind(access):
            check = self._check_slot(request.staff_member, request.date, at)

            model = AppointmentModel(
                id=uuid4(),
                pet_name=request.pet_name.strip(),
                owner_name=request.owner_name.strip(),
                phone=request.phone.strip(),
                email=request.email.strip(),
                appointment_date=request.date,
                appointment_time=at,
                staff_member=request.staff_member,
                service_type=request.service_type,
                reason=request.reason,
                notes=request.notes,
                price=request.price,
                status=AppointmentStatus.PENDING.value,
                created_at=self.clock.now(),
                created_by=access.identity,
            )
            self.session.add(model)
            self._flush("Appointment", model.id)

            if check.is_double_booking:
                logger.warning(
                    "booking_overlaps_existing",
                    extra={
                        "appointment_id": str(model.id),
                        "staff_member": model.staff_member,
                        "appointment_date": model.appointment_date,
                        "appointment_time": model.appointment_time,
                        "overlapping": len(check.conflicts),
                    },
                )
            logger.info(
                "appointment_created",
                extra={
                    "appointment_id": str(model.id),
                    "staff_member": model.staff_member,
                    "appointment_date": model.appointment_date,
                    "appointment_time": model.appointment_time,
                    "service_type": model.service_type,
                    "price": model.price,
                },
            )
        return model.id

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def transition_status(
        self,
        appointment_id: UUID,
        target: AppointmentStatus | str,
        access: AccessContext,
        reason: str | None = None,
    ) -> AppointmentSnapshot:
        """Apply one status move.

        Owners may only cancel their own appointments.  Moving to
        ``rescheduled`` here only sets the terminal marker; use
        ``reschedule`` to also book the replacement.
        """
        target = AppointmentStatus(target)
        with self._bind(access, appointment_id):
            model = self._load(appointment_id, access)
            if access.is_owner and target is not AppointmentStatus.CANCELLED:
                raise AccessDeniedError(
                    access.identity, access.role.value, f"set status {target.value}"
                )

            previous = self._record_status(model, target, access, reason)
            self._flush("Appointment", model.id)

            logger.info(
                "appointment_status_changed",
                extra={
                    "from_status": previous.value,
                    "to_status": target.value,
                    "reason": reason,
                },
            )
            self._notify(model, reason)
            return model.to_dto()

    def reschedule(
        self,
        appointment_id: UUID,
        new_date: date,
        new_time: time | str,
        access: AccessContext,
        reason: str | None = None,
    ) -> UUID:
        """Move an approved appointment to a new slot.

        The old record becomes ``rescheduled`` (terminal) and a new pending
        record takes the new slot with the same contact details, staff member,
        service and price.  Payment history stays on the old record.  Returns
        the new record's id.
        """
        access.require_role(CLINIC_ROLES, "reschedule")
        at = parse_clock_time(new_time, "new_time")
        with self._bind(access, appointment_id):
            old = self._load(appointment_id, access)
            if AppointmentStatus.RESCHEDULED not in APPOINTMENT_TRANSITIONS[old.status_enum]:
                raise InvalidTransitionError(
                    "appointment_status",
                    str(old.id),
                    old.status,
                    AppointmentStatus.RESCHEDULED.value,
                )

            check = self._check_slot(old.staff_member, new_date, at, exclude_id=old.id)
            self._record_status(old, AppointmentStatus.RESCHEDULED, access, reason)

            new = AppointmentModel(
                id=uuid4(),
                pet_name=old.pet_name,
                owner_name=old.owner_name,
                phone=old.phone,
                email=old.email,
                appointment_date=new_date,
                appointment_time=at,
                staff_member=old.staff_member,
                service_type=old.service_type,
                reason=old.reason,
                notes=old.notes,
                price=old.price,
                status=AppointmentStatus.PENDING.value,
                rescheduled_from_id=old.id,
                created_at=self.clock.now(),
                created_by=access.identity,
            )
            self.session.add(new)
            self._flush("Appointment", old.id)

            if check.is_double_booking:
                logger.warning(
                    "booking_overlaps_existing",
                    extra={
                        "appointment_id": str(new.id),
                        "staff_member": new.staff_member,
                        "appointment_date": new_date,
                        "appointment_time": at,
                        "overlapping": len(check.conflicts),
                    },
                )
            logger.info(
                "appointment_rescheduled",
                extra={
                    "new_appointment_id": str(new.id),
                    "old_date": old.appointment_date,
                    "old_time": old.appointment_time,
                    "new_date": new_date,
                    "new_time": at,
                },
            )
            self._notify(old, reason, new_date=new_date, new_time=at)
        return new.id

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def set_payment_status(
        self,
        appointment_id: UUID,
        target: PaymentStatus | str,
        confirmation: PaymentConfirmation | None,
        access: AccessContext,
    ) -> AppointmentSnapshot:
        """Advance the payment state and append the matching payment event.

        Owners may only record the deposit on their own appointments; full
        and remaining-balance payments are confirmed by clinic staff.

        ``confirmation`` is required for every move that records money
        (deposit, full payment, remaining balance).  Its timestamp defaults
        to now and its amount to the share of the price the event covers.
        """
        target = PaymentStatus(target)
        with self._bind(access, appointment_id):
            model = self._load(appointment_id, access)
            if target is not PaymentStatus.DOWN_PAYMENT_PAID:
                access.require_role(CLINIC_ROLES, f"set payment status {target.value}")
            current = model.payment_status_enum

            if model.status_enum is not AppointmentStatus.APPROVED:
                raise InvalidTransitionError(
                    "payment_status",
                    str(model.id),
                    current.value if current else None,
                    target.value,
                    detail=f"appointment is {model.status}",
                )
            if target not in PAYMENT_TRANSITIONS[current]:
                raise InvalidTransitionError(
                    "payment_status",
                    str(model.id),
                    current.value if current else None,
                    target.value,
                )

            kind = payment_event_kind(current, target)
            if kind is not None:
                if confirmation is None:
                    raise ValidationError(
                        f"Recording a {kind.value} requires a payment confirmation",
                        "confirmation",
                    )
                amount = confirmation.amount
                if amount is None:
                    amount = self._default_amount(model, kind)
                model.payment_events.append(
                    PaymentEventModel(
                        id=uuid4(),
                        kind=kind.value,
                        method=confirmation.method.value,
                        timestamp=confirmation.confirmed_at or self.clock.now(),
                        amount=amount,
                        confirmed_by=access.identity,
                    )
                )

            model.payment_status = target.value
            self._flush("Appointment", model.id)

            logger.info(
                "payment_status_changed",
                extra={
                    "from_payment_status": current.value if current else None,
                    "to_payment_status": target.value,
                    "payment_event": kind.value if kind else None,
                    "payment_method": confirmation.method.value if confirmation else None,
                },
            )
            return model.to_dto()

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    def add_consumption_line(
        self,
        appointment_id: UUID,
        item_id: UUID,
        qty: int,
        access: AccessContext,
    ) -> ConsumptionLineRecord:
        with self._bind(access, appointment_id):
            self._load(appointment_id, access)
            return self.reconciler.log_usage(appointment_id, item_id, qty, access)

    def decide_consumption_line(
        self,
        appointment_id: UUID,
        line_id: UUID,
        decision: LineDecision | str,
        access: AccessContext,
        reason: str | None = None,
    ) -> ConsumptionLineRecord:
        decision = LineDecision(decision)
        with self._bind(access, appointment_id):
            self._load(appointment_id, access)
            line = self._inventory.get_line(line_id)
            if line.appointment_id != appointment_id:
                raise ConsumptionLineNotFoundError(str(line_id))
            if decision is LineDecision.CONFIRM:
                return self.reconciler.confirm(line_id, access)
            return self.reconciler.reject(line_id, access, reason or "")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, appointment_id: UUID, access: AccessContext) -> AppointmentSnapshot:
        return self._appointments.get(appointment_id, access)

    def list_all(self, access: AccessContext) -> list[AppointmentSnapshot]:
        return self._appointments.list_all(access)

    def list_by_date(self, day: date, access: AccessContext) -> list[AppointmentSnapshot]:
        return self._appointments.list_by_date(day, access)

    def list_for_staff(
        self, staff_member: str, access: AccessContext
    ) -> list[AppointmentSnapshot]:
        return self._appointments.list_for_staff(staff_member, access)

    def history(self, appointment_id: UUID, access: AccessContext) -> list[StatusChange]:
        return self._appointments.status_history(appointment_id, access)


__all__ = ["AppointmentLedger", "DEFAULT_DEPOSIT_RATE"]
