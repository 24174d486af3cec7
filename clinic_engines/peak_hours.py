"""
Peak-hours heatmap over approved appointments.

Counts approved appointments by (weekday, hour of booking time), across
every staff member and date given.  Rows run Sunday..Saturday; columns run
``start_hour``..``end_hour`` inclusive.  Bookings outside those hours are
ignored.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from clinic_engines.tracer import traced_engine
from clinic_kernel.domain.appointment import AppointmentSnapshot, AppointmentStatus

HEATMAP_DAYS: tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


@dataclass(frozen=True)
class PeakHoursGrid:
    hours: tuple[int, ...]
    # counts[row][col]: row indexes HEATMAP_DAYS, col indexes hours
    counts: tuple[tuple[int, ...], ...]

    def count(self, day_name: str, hour: int) -> int:
        return self.counts[HEATMAP_DAYS.index(day_name)][self.hours.index(hour)]

    @property
    def busiest(self) -> tuple[str, int, int] | None:
        """(day, hour, count) of the busiest cell, None if all empty."""
        best = None
        for row, day_name in enumerate(HEATMAP_DAYS):
            for col, hour in enumerate(self.hours):
                n = self.counts[row][col]
                if n and (best is None or n > best[2]):
                    best = (day_name, hour, n)
        return best


@traced_engine("peak_hours", "1.0", fingerprint_fields=("start_hour", "end_hour"))
def peak_hours(
    appointments: Iterable[AppointmentSnapshot],
    *,
    start_hour: int = 9,
    end_hour: int = 18,
) -> PeakHoursGrid:
    hours = tuple(range(start_hour, end_hour + 1))
    grid = [[0] * len(hours) for _ in HEATMAP_DAYS]

    for appointment in appointments:
        if appointment.status is not AppointmentStatus.APPROVED:
            continue
        hour = appointment.time.hour
        if not start_hour <= hour <= end_hour:
            continue
        # date.weekday() is Monday=0; the heatmap starts on Sunday
        row = (appointment.date.weekday() + 1) % 7
        grid[row][hour - start_hour] += 1

    return PeakHoursGrid(hours=hours, counts=tuple(tuple(r) for r in grid))
