"""
Module: clinic_engines.availability
Responsibility:
    Turn a staff member's AvailabilityProfile into bookable slot start
    times for a date, and decide whether a proposed booking is legal given
    the staff member's other active bookings that day.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Takes a profile and plain
    times; never reads the database.  AppointmentLedger calls
    ``validate_booking`` on create/reschedule; presentation calls
    ``generate_slots`` / ``available_slots`` to render schedules.

Invariants enforced:
    - Deterministic: same profile and day always give the same tuple.
    - A slot's window [t, t + duration) ends no later than end_time.
    - A slot whose window touches the lunch window is skipped, not shortened.
    - Two bookings for one staff member on one day start at least
      duration + break minutes apart.  An identical start time is a double
      booking: reported as a conflict, rejected only when the caller asks.

Failure modes:
    - SlotUnavailableError from ``validate_booking`` when the day is not
      worked, the time is not a generated slot, or spacing is violated.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, time

from clinic_engines.tracer import traced_engine
from clinic_kernel.domain.availability import (
    AvailabilityProfile,
    minutes_of,
    time_of,
    weekday_name,
)
from clinic_kernel.exceptions import SlotUnavailableError


@dataclass(frozen=True)
class BookingCheck:
    """Outcome of a successful ``validate_booking``.

    ``conflicts`` lists existing start times identical to the candidate.
    """

    at: time
    conflicts: tuple[time, ...] = ()

    @property
    def is_double_booking(self) -> bool:
        return bool(self.conflicts)


def _slot_minutes(profile: AvailabilityProfile) -> list[int]:
    start = minutes_of(profile.start_time)
    end = minutes_of(profile.end_time)
    step = profile.appointment_duration

    slots: list[int] = []
    t = start
    while t + step <= end:
        if profile.lunch is None or not profile.lunch.overlaps(t, t + step):
            slots.append(t)
        t += step
    return slots


@traced_engine("availability", "1.0", fingerprint_fields=("day",))
def generate_slots(profile: AvailabilityProfile, *, day: date) -> tuple[time, ...]:
    """Bookable start times for ``profile`` on ``day``, in order.

    Empty when the staff member does not work that weekday.
    """
    if not profile.works_on(day):
        return ()
    return tuple(time_of(m) for m in _slot_minutes(profile))


def validate_booking(
    profile: AvailabilityProfile,
    *,
    day: date,
    at: time,
    existing: Iterable[time],
    reject_double_booking: bool = False,
) -> BookingCheck:
    """Check a candidate booking against the profile and active bookings.

    ``existing`` holds the start times of the staff member's other pending
    or approved bookings on ``day``.

    Raises:
        SlotUnavailableError: day not worked, time not a generated slot,
            another booking too close, or (when ``reject_double_booking``)
            an identical start time already taken.
    """
    if not profile.works_on(day):
        raise SlotUnavailableError(
            profile.staff_member, day, at, f"does not work on {weekday_name(day)}"
        )

    candidate = minutes_of(at)
    if at.second or at.microsecond or candidate not in _slot_minutes(profile):
        raise SlotUnavailableError(
            profile.staff_member, day, at, "not an offered slot"
        )

    conflicts: list[time] = []
    for other in existing:
        gap = abs(minutes_of(other) - candidate)
        if gap == 0:
            conflicts.append(other)
        elif gap < profile.min_spacing:
            raise SlotUnavailableError(
                profile.staff_member,
                day,
                at,
                f"within {profile.min_spacing} minutes of booking at {other:%H:%M}",
            )

    if conflicts and reject_double_booking:
        raise SlotUnavailableError(
            profile.staff_member, day, at, "slot already booked"
        )
    return BookingCheck(at=at, conflicts=tuple(conflicts))


def available_slots(
    profile: AvailabilityProfile,
    *,
    day: date,
    existing: Iterable[time],
) -> tuple[time, ...]:
    """Generated slots that a new booking could take without any conflict."""
    taken = [minutes_of(t) for t in existing]
    spacing = profile.min_spacing
    if not profile.works_on(day):
        return ()
    return tuple(
        time_of(m)
        for m in _slot_minutes(profile)
        if all(abs(m - other) >= spacing for other in taken)
    )
