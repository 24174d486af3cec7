"""
Tests for AppointmentLedger.

Covers:
- Booking: slot validation, double-booking flag, owner restrictions
- Status transitions, history rows and notifications
- Reschedule
- Payment state machine and payment events
- Access filtering on reads
"""

from dataclasses import replace
from datetime import date, datetime, time, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from clinic_kernel.domain.appointment import (
    AppointmentStatus,
    PaymentConfirmation,
    PaymentEventKind,
    PaymentMethod,
    PaymentStatus,
)
from clinic_kernel.exceptions import (
    AccessDeniedError,
    AppointmentNotFoundError,
    AvailabilityProfileNotFoundError,
    InvalidTransitionError,
    SlotUnavailableError,
    ValidationError,
)
from clinic_kernel.models.inventory import InventoryItemModel
from clinic_kernel.services.appointment_ledger import AppointmentLedger
from clinic_kernel.services.notifications import NullNotifier

MONDAY = date(2024, 3, 4)
TUESDAY = date(2024, 3, 5)
SATURDAY = date(2024, 3, 9)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, notification):
        self.sent.append(notification)


class TestCreate:

    def test_creates_pending(self, ledger, book, staff_access):
        appointment_id = book(at="10:00")

        appt = ledger.get(appointment_id, staff_access)
        assert appt.status is AppointmentStatus.PENDING
        assert appt.payment_status is None
        assert appt.time == time(10, 0)
        assert appt.price == Decimal("1000")
        assert appt.created_at == datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)

    def test_slot_not_offered(self, book):
        with pytest.raises(SlotUnavailableError):
            book(at="10:15")

    def test_time_with_seconds_not_offered(self, ledger, booking_request, staff_access):
        request = replace(booking_request(at="10:00"), time=time(10, 0, 45))

        with pytest.raises(SlotUnavailableError):
            ledger.create(request, staff_access)

        assert ledger.list_all(staff_access) == []

    def test_non_working_day(self, book):
        with pytest.raises(SlotUnavailableError):
            book(day=SATURDAY)

    def test_unknown_staff_member(self, book):
        with pytest.raises(AvailabilityProfileNotFoundError):
            book(staff_member="Dr. Nobody")

    def test_double_booking_accepted_and_logged(self, ledger, book, staff_access, captured_logs):
        first = book(at="10:00")
        second = book(at="10:00", email="ben.cruz@example.com", pet_name="Bantay")

        assert ledger.get(second, staff_access).status is AppointmentStatus.PENDING
        conflicts = ledger._appointments.conflicts_for(first, staff_access)
        assert [c.id for c in conflicts] == [second]
        warnings = [r for r in captured_logs() if r["message"] == "booking_overlaps_existing"]
        assert len(warnings) == 1
        assert warnings[0]["appointment_id"] == str(second)

    def test_double_booking_rejected_when_configured(
        self, session, deterministic_clock, saved_profile, booking_request, staff_access,
    ):
        strict = AppointmentLedger(session, deterministic_clock, reject_overlapping_bookings=True)
        strict.create(booking_request(at="10:00"), staff_access)

        with pytest.raises(SlotUnavailableError):
            strict.create(booking_request(at="10:00", email="ben.cruz@example.com"), staff_access)

    def test_cancelled_booking_frees_slot(self, ledger, book, staff_access, captured_logs):
        first = book(at="10:00")
        ledger.transition_status(first, AppointmentStatus.CANCELLED, staff_access)

        book(at="10:00", email="ben.cruz@example.com")

        assert not any(r["message"] == "booking_overlaps_existing" for r in captured_logs())

    def test_owner_books_for_self(self, ledger, book, owner_access):
        appointment_id = book(access=owner_access)

        assert ledger.get(appointment_id, owner_access).email == owner_access.identity

    def test_owner_cannot_book_for_someone_else(self, book, owner_access):
        with pytest.raises(AccessDeniedError):
            book(access=owner_access, email="ben.cruz@example.com")


class TestTransitionStatus:

    def test_approve(self, ledger, book, staff_access):
        appointment_id = book()

        appt = ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, staff_access)

        assert appt.status is AppointmentStatus.APPROVED

    def test_string_target_accepted(self, ledger, book, staff_access):
        appointment_id = book()

        appt = ledger.transition_status(appointment_id, "rejected", staff_access, reason="Fully booked")

        assert appt.status is AppointmentStatus.REJECTED
        assert appt.status_reason == "Fully booked"

    def test_illegal_move_leaves_state(self, ledger, approved_appointment, staff_access):
        appointment_id = approved_appointment()

        with pytest.raises(InvalidTransitionError) as exc_info:
            ledger.transition_status(appointment_id, AppointmentStatus.PENDING, staff_access)

        assert exc_info.value.machine == "appointment_status"
        assert ledger.get(appointment_id, staff_access).status is AppointmentStatus.APPROVED
        assert len(ledger.history(appointment_id, staff_access)) == 1

    def test_terminal_status_is_final(self, ledger, book, staff_access):
        appointment_id = book()
        ledger.transition_status(appointment_id, AppointmentStatus.CANCELLED, staff_access)

        with pytest.raises(InvalidTransitionError):
            ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, staff_access)

    def test_history_recorded(self, ledger, book, staff_access, deterministic_clock):
        appointment_id = book()
        ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, staff_access)
        deterministic_clock.advance(60)
        ledger.transition_status(appointment_id, AppointmentStatus.CANCELLED, staff_access, "Owner called")

        history = ledger.history(appointment_id, staff_access)

        assert [(h.from_status, h.to_status) for h in history] == [
            (AppointmentStatus.PENDING, AppointmentStatus.APPROVED),
            (AppointmentStatus.APPROVED, AppointmentStatus.CANCELLED),
        ]
        assert history[1].reason == "Owner called"
        assert history[1].actor == staff_access.identity

    def test_owner_may_cancel_own(self, ledger, book, owner_access):
        appointment_id = book()

        appt = ledger.transition_status(appointment_id, AppointmentStatus.CANCELLED, owner_access)

        assert appt.status is AppointmentStatus.CANCELLED

    def test_owner_may_not_approve(self, ledger, book, owner_access):
        appointment_id = book()

        with pytest.raises(AccessDeniedError):
            ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, owner_access)

    def test_owner_cannot_see_others(self, ledger, book, other_owner_access):
        appointment_id = book()

        with pytest.raises(AppointmentNotFoundError):
            ledger.transition_status(appointment_id, AppointmentStatus.CANCELLED, other_owner_access)

    def test_unknown_id(self, ledger, staff_access):
        with pytest.raises(AppointmentNotFoundError):
            ledger.transition_status(uuid4(), AppointmentStatus.APPROVED, staff_access)

    def test_notification_sent(self, session, deterministic_clock, saved_profile, booking_request, staff_access):
        notifier = RecordingNotifier()
        ledger = AppointmentLedger(session, deterministic_clock, notifier=notifier)
        appointment_id = ledger.create(booking_request(), staff_access)

        ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, staff_access)

        assert len(notifier.sent) == 1
        assert notifier.sent[0].status is AppointmentStatus.APPROVED
        assert notifier.sent[0].recipient == "ana.santos@example.com"

    def test_logging_notifier_subject(self, ledger, book, staff_access, captured_logs):
        appointment_id = book()
        ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, staff_access)

        sent = [r for r in captured_logs() if r["message"] == "appointment_notification"]
        assert sent[0]["subject"] == "Appointment Approved - FURSURE Veterinary Clinic"
        assert sent[0]["actor_id"] == staff_access.identity

    def test_cancel_keeps_confirmed_consumption(
        self, ledger, approved_appointment, create_item, staff_access, session,
    ):
        appointment_id = approved_appointment()
        item_id = create_item(stock=20)
        line = ledger.add_consumption_line(appointment_id, item_id, 5, staff_access)
        ledger.decide_consumption_line(appointment_id, line.id, "confirm", staff_access)

        ledger.transition_status(appointment_id, AppointmentStatus.CANCELLED, staff_access)

        assert session.get(InventoryItemModel, item_id).stock == 15


class TestReschedule:

    def test_creates_linked_pending_booking(self, ledger, approved_appointment, staff_access):
        old_id = approved_appointment(at="10:00")

        new_id = ledger.reschedule(old_id, TUESDAY, "14:00", staff_access, reason="Vet unavailable")

        old = ledger.get(old_id, staff_access)
        new = ledger.get(new_id, staff_access)
        assert old.status is AppointmentStatus.RESCHEDULED
        assert old.date == MONDAY
        assert new.status is AppointmentStatus.PENDING
        assert new.date == TUESDAY
        assert new.time == time(14, 0)
        assert new.rescheduled_from_id == old_id
        assert new.price == old.price
        assert new.payment_status is None

    def test_same_day_move_ignores_own_slot(self, ledger, approved_appointment, staff_access):
        old_id = approved_appointment(at="10:00")

        new_id = ledger.reschedule(old_id, MONDAY, time(10, 30), staff_access)

        assert ledger.get(new_id, staff_access).time == time(10, 30)

    def test_new_time_with_seconds_rejected(self, ledger, approved_appointment, staff_access):
        old_id = approved_appointment()

        with pytest.raises(SlotUnavailableError):
            ledger.reschedule(old_id, TUESDAY, time(14, 0, 30), staff_access)

        assert ledger.get(old_id, staff_access).status is AppointmentStatus.APPROVED

    def test_pending_cannot_be_rescheduled(self, ledger, book, staff_access):
        appointment_id = book()

        with pytest.raises(InvalidTransitionError):
            ledger.reschedule(appointment_id, TUESDAY, "14:00", staff_access)

    def test_invalid_new_slot_leaves_original(self, ledger, approved_appointment, staff_access):
        old_id = approved_appointment()

        with pytest.raises(SlotUnavailableError):
            ledger.reschedule(old_id, SATURDAY, "10:00", staff_access)

        assert ledger.get(old_id, staff_access).status is AppointmentStatus.APPROVED

    def test_owner_may_not_reschedule(self, ledger, approved_appointment, owner_access):
        old_id = approved_appointment()

        with pytest.raises(AccessDeniedError):
            ledger.reschedule(old_id, TUESDAY, "14:00", owner_access)


class TestPayments:

    def test_full_payment_event(self, ledger, approved_appointment, staff_access):
        appointment_id = approved_appointment()
        paid_at = datetime(2024, 3, 5, 14, 0, tzinfo=timezone.utc)

        appt = ledger.set_payment_status(
            appointment_id,
            PaymentStatus.FULLY_PAID,
            PaymentConfirmation(PaymentMethod.AT_CLINIC, confirmed_at=paid_at),
            staff_access,
        )

        assert appt.payment_status is PaymentStatus.FULLY_PAID
        assert len(appt.payment_events) == 1
        event = appt.payment_events[0]
        assert event.kind is PaymentEventKind.FULL_PAYMENT
        assert event.timestamp == paid_at
        assert event.amount == Decimal("1000")
        assert event.confirmed_by == staff_access.identity

    def test_deposit_then_balance(self, ledger, approved_appointment, staff_access, deterministic_clock):
        appointment_id = approved_appointment(price="1000")

        ledger.set_payment_status(
            appointment_id, PaymentStatus.DOWN_PAYMENT_PAID,
            PaymentConfirmation(PaymentMethod.GCASH), staff_access,
        )
        deterministic_clock.advance(days=1)
        appt = ledger.set_payment_status(
            appointment_id, PaymentStatus.FULLY_PAID,
            PaymentConfirmation(PaymentMethod.AT_CLINIC), staff_access,
        )

        kinds = [e.kind for e in appt.payment_events]
        assert kinds == [PaymentEventKind.DEPOSIT, PaymentEventKind.REMAINING_BALANCE]
        assert [e.amount for e in appt.payment_events] == [Decimal("300"), Decimal("700")]
        assert appt.latest_event(PaymentEventKind.REMAINING_BALANCE).timestamp == deterministic_clock.now()

    def test_pending_records_no_event(self, ledger, approved_appointment, staff_access):
        appointment_id = approved_appointment()

        appt = ledger.set_payment_status(appointment_id, PaymentStatus.PENDING, None, staff_access)

        assert appt.payment_status is PaymentStatus.PENDING
        assert appt.payment_events == ()

    def test_regression_rejected(self, ledger, approved_appointment, staff_access):
        appointment_id = approved_appointment()
        ledger.set_payment_status(
            appointment_id, PaymentStatus.FULLY_PAID,
            PaymentConfirmation(PaymentMethod.ONLINE), staff_access,
        )

        with pytest.raises(InvalidTransitionError) as exc_info:
            ledger.set_payment_status(
                appointment_id, PaymentStatus.DOWN_PAYMENT_PAID,
                PaymentConfirmation(PaymentMethod.ONLINE), staff_access,
            )

        assert exc_info.value.machine == "payment_status"
        assert len(ledger.get(appointment_id, staff_access).payment_events) == 1

    def test_requires_approved(self, ledger, book, staff_access):
        appointment_id = book()

        with pytest.raises(InvalidTransitionError):
            ledger.set_payment_status(
                appointment_id, PaymentStatus.FULLY_PAID,
                PaymentConfirmation(PaymentMethod.ONLINE), staff_access,
            )

    def test_money_move_requires_confirmation(self, ledger, approved_appointment, staff_access):
        appointment_id = approved_appointment()

        with pytest.raises(ValidationError):
            ledger.set_payment_status(appointment_id, PaymentStatus.FULLY_PAID, None, staff_access)

    def test_owner_pays_own_deposit(self, ledger, approved_appointment, owner_access):
        appointment_id = approved_appointment()

        appt = ledger.set_payment_status(
            appointment_id, "down_payment_paid",
            PaymentConfirmation("paymaya", amount=Decimal("350")), owner_access,
        )

        assert appt.payment_events[0].amount == Decimal("350")
        assert appt.payment_events[0].method is PaymentMethod.PAYMAYA

    def test_owner_may_not_mark_fully_paid(self, ledger, approved_appointment, owner_access, staff_access):
        appointment_id = approved_appointment()

        with pytest.raises(AccessDeniedError):
            ledger.set_payment_status(
                appointment_id, PaymentStatus.FULLY_PAID,
                PaymentConfirmation(PaymentMethod.ONLINE), owner_access,
            )

        appt = ledger.get(appointment_id, staff_access)
        assert appt.payment_status is None
        assert appt.payment_events == ()

    def test_owner_may_not_settle_remaining_balance(self, ledger, approved_appointment, owner_access, staff_access):
        appointment_id = approved_appointment()
        ledger.set_payment_status(
            appointment_id, PaymentStatus.DOWN_PAYMENT_PAID,
            PaymentConfirmation(PaymentMethod.GCASH), owner_access,
        )

        with pytest.raises(AccessDeniedError):
            ledger.set_payment_status(
                appointment_id, PaymentStatus.FULLY_PAID,
                PaymentConfirmation(PaymentMethod.GCASH), owner_access,
            )

        appt = ledger.get(appointment_id, staff_access)
        assert appt.payment_status is PaymentStatus.DOWN_PAYMENT_PAID
        assert [e.kind for e in appt.payment_events] == [PaymentEventKind.DEPOSIT]


class TestReads:

    def test_owner_sees_only_own(self, ledger, book, owner_access, other_owner_access, staff_access):
        mine = book(at="09:00")
        book(at="10:00", email="ben.cruz@example.com")

        assert [a.id for a in ledger.list_all(owner_access)] == [mine]
        assert len(ledger.list_all(other_owner_access)) == 1
        assert len(ledger.list_all(staff_access)) == 2

    def test_owner_get_of_other_is_not_found(self, ledger, book, other_owner_access):
        appointment_id = book()

        with pytest.raises(AppointmentNotFoundError):
            ledger.get(appointment_id, other_owner_access)

    def test_list_by_date_and_staff(self, ledger, book, clinician_access):
        book(day=MONDAY, at="09:00")
        book(day=TUESDAY, at="09:00")

        assert [a.date for a in ledger.list_by_date(TUESDAY, clinician_access)] == [TUESDAY]
        assert len(ledger.list_for_staff("Dr. Reyes", clinician_access)) == 2
        assert ledger.list_for_staff("Dr. Cruz", clinician_access) == []

    def test_display_numbers_follow_creation_order(self, ledger, book):
        first = book(at="11:00")
        second = book(at="09:00")

        numbers = ledger._appointments.display_numbers()

        assert numbers[first] == "APT #1"
        assert numbers[second] == "APT #2"


class TestNullNotifier:

    def test_silent(self, session, deterministic_clock, saved_profile, booking_request, staff_access, captured_logs):
        ledger = AppointmentLedger(session, deterministic_clock, notifier=NullNotifier())
        appointment_id = ledger.create(booking_request(), staff_access)
        ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, staff_access)

        assert not any(r["message"] == "appointment_notification" for r in captured_logs())
