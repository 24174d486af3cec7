"""Tests for AvailabilityService profile storage and slot queries."""

from datetime import date, time

import pytest

from clinic_kernel.domain.availability import WEEKDAY_NAMES, AvailabilityProfile
from clinic_kernel.exceptions import AccessDeniedError, AvailabilityProfileNotFoundError

STAFF_MEMBER = "Dr. Reyes"
MONDAY = date(2024, 3, 4)
SATURDAY = date(2024, 3, 9)
WEEKDAYS = WEEKDAY_NAMES[:5]


class TestProfiles:

    def test_round_trip(self, availability_service, saved_profile):
        assert availability_service.get_profile(STAFF_MEMBER) == saved_profile

    def test_set_profile_replaces(self, availability_service, saved_profile, staff_access, captured_logs):
        shorter = AvailabilityProfile.from_strings(
            STAFF_MEMBER, ["Monday"], "13:00", "15:00", 60,
        )

        availability_service.set_profile(shorter, staff_access)

        assert availability_service.get_profile(STAFF_MEMBER).working_days == frozenset({"Monday"})
        record = next(r for r in captured_logs() if r["message"] == "availability_profile_saved")
        assert record["profile_created"] is False

    def test_owner_may_not_edit(self, availability_service, weekday_profile, owner_access):
        with pytest.raises(AccessDeniedError):
            availability_service.set_profile(weekday_profile, owner_access)

    def test_missing_profile(self, availability_service):
        with pytest.raises(AvailabilityProfileNotFoundError):
            availability_service.get_profile("Dr. Nobody")


class TestSlots:

    def test_slots_for_working_day(self, availability_service, saved_profile):
        slots = availability_service.slots_for(STAFF_MEMBER, MONDAY)

        assert len(slots) == 16
        assert slots[0] == time(9, 0)
        assert slots[-1] == time(16, 30)

    def test_no_slots_on_day_off(self, availability_service, saved_profile):
        assert availability_service.slots_for(STAFF_MEMBER, SATURDAY) == ()

    def test_open_slots_exclude_bookings(self, availability_service, book):
        book(at="10:00")
        book(at="11:30")

        slots = availability_service.open_slots(STAFF_MEMBER, MONDAY)

        assert len(slots) == 14
        assert time(10, 0) not in slots
        assert time(11, 30) not in slots

    def test_cancelled_booking_frees_slot(self, availability_service, book, ledger, staff_access):
        appointment_id = book(at="10:00")
        ledger.transition_status(appointment_id, "cancelled", staff_access)

        assert time(10, 0) in availability_service.open_slots(STAFF_MEMBER, MONDAY)

    def test_break_spacing(self, availability_service, staff_access, book):
        spaced = AvailabilityProfile.from_strings(
            STAFF_MEMBER, WEEKDAYS, "09:00", "12:00", 30, 30,
        )
        availability_service.set_profile(spaced, staff_access)
        book(at="10:00")

        slots = availability_service.open_slots(STAFF_MEMBER, MONDAY)

        assert time(9, 30) not in slots
        assert time(10, 30) not in slots
        assert time(9, 0) in slots
        assert time(11, 0) in slots
