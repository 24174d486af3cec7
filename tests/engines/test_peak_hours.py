"""Tests for the peak hours heatmap."""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from uuid import uuid4

from clinic_engines.peak_hours import HEATMAP_DAYS, peak_hours
from clinic_kernel.domain.appointment import AppointmentSnapshot, AppointmentStatus


def _appointment(day, at, status=AppointmentStatus.APPROVED):
    return AppointmentSnapshot(
        id=uuid4(),
        pet_name="Mochi",
        owner_name="Ana Santos",
        phone="0917-555-0100",
        email="ana.santos@example.com",
        date=day,
        time=at,
        staff_member="Dr. Reyes",
        status=status,
        price=Decimal("500"),
        created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )


class TestPeakHours:

    def test_grid_shape(self):
        grid = peak_hours([])

        assert grid.hours == tuple(range(9, 19))
        assert len(grid.counts) == 7
        assert HEATMAP_DAYS[0] == "Sunday"
        assert grid.busiest is None

    def test_counts_approved_by_weekday_and_hour(self):
        monday = date(2024, 3, 4)
        appts = [
            _appointment(monday, time(10, 0)),
            _appointment(monday, time(10, 30)),
            _appointment(date(2024, 3, 11), time(10, 0)),
            _appointment(date(2024, 3, 10), time(9, 0)),
            _appointment(monday, time(11, 0), status=AppointmentStatus.PENDING),
            _appointment(monday, time(19, 0)),
        ]

        grid = peak_hours(appts)

        assert grid.count("Monday", 10) == 3
        assert grid.count("Sunday", 9) == 1
        assert grid.count("Monday", 11) == 0
        assert grid.busiest == ("Monday", 10, 3)

    def test_custom_hour_range(self):
        grid = peak_hours([_appointment(date(2024, 3, 4), time(8, 0))], start_hour=8, end_hour=12)

        assert grid.hours == (8, 9, 10, 11, 12)
        assert grid.count("Monday", 8) == 1
