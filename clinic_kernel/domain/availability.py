"""
Availability profile value objects (``clinic_kernel.domain.availability``).

Responsibility
--------------
Describes when a staff member takes bookings: which weekdays, the daily
start/end window, appointment length, break between appointments and an
optional lunch window.  Slot generation over a profile lives in
``clinic_engines.availability``.

Invariants enforced
-------------------
* start < end.
* appointment_duration > 0, break_time >= 0.
* Lunch window, when given, has lunch_start < lunch_end and lies inside
  [start, end).
* working_days contains only English weekday names.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time

from clinic_kernel.exceptions import ValidationError

WEEKDAY_NAMES: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def parse_clock_time(value: str | time, field: str = "time") -> time:
    """Parse ``"HH:MM"`` into a ``time``; ``time`` values pass through unchanged."""
    if isinstance(value, time):
        return value
    try:
        hours, minutes = str(value).strip().split(":")
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ValidationError(f"{field} must be HH:MM, got {value!r}", field) from exc


def minutes_of(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def time_of(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


@dataclass(frozen=True)
class LunchWindow:
    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValidationError("Lunch start must be before lunch end", "lunch")

    def overlaps(self, start: int, end: int) -> bool:
        """True if the half-open minute range [start, end) touches lunch."""
        return start < minutes_of(self.end) and end > minutes_of(self.start)


@dataclass(frozen=True)
class AvailabilityProfile:
    """One staff member's booking template."""

    staff_member: str
    working_days: frozenset[str]
    start_time: time
    end_time: time
    appointment_duration: int
    break_time: int = 0
    lunch: LunchWindow | None = None

    def __post_init__(self) -> None:
        if not self.staff_member or not self.staff_member.strip():
            raise ValidationError("Profile requires a staff member", "staff_member")
        unknown = set(self.working_days) - set(WEEKDAY_NAMES)
        if unknown:
            raise ValidationError(
                f"Unknown working days: {sorted(unknown)}", "working_days"
            )
        if self.start_time >= self.end_time:
            raise ValidationError("Start time must be before end time", "start_time")
        if self.appointment_duration <= 0:
            raise ValidationError(
                "Appointment duration must be positive", "appointment_duration"
            )
        if self.break_time < 0:
            raise ValidationError("Break time cannot be negative", "break_time")
        if self.lunch is not None and (
            self.lunch.start < self.start_time or self.lunch.end > self.end_time
        ):
            raise ValidationError(
                "Lunch window must lie within working hours", "lunch"
            )

    @classmethod
    def from_strings(
        cls,
        staff_member: str,
        working_days: list[str] | tuple[str, ...] | frozenset[str],
        start_time: str,
        end_time: str,
        appointment_duration: int,
        break_time: int = 0,
        lunch_start: str | None = None,
        lunch_end: str | None = None,
    ) -> AvailabilityProfile:
        """Build a profile from the "HH:MM" strings staff enter."""
        lunch = None
        if lunch_start and lunch_end:
            lunch = LunchWindow(
                parse_clock_time(lunch_start, "lunch_start"),
                parse_clock_time(lunch_end, "lunch_end"),
            )
        return cls(
            staff_member=staff_member,
            working_days=frozenset(working_days),
            start_time=parse_clock_time(start_time, "start_time"),
            end_time=parse_clock_time(end_time, "end_time"),
            appointment_duration=int(appointment_duration),
            break_time=int(break_time),
            lunch=lunch,
        )

    def works_on(self, day: date) -> bool:
        return weekday_name(day) in self.working_days

    @property
    def min_spacing(self) -> int:
        """Minimum minutes between two booking starts for this staff member."""
        return self.appointment_duration + self.break_time
