"""
Property-based tests for the pure engines.

Properties:
- Slots lie inside working hours, never touch lunch, are evenly stepped
  and are the same on every call.
- Open slots are a subset of generated slots and respect spacing.
- Recognized revenue equals the sum of settled, approved, priced
  appointments in the period, and recomputing gives the same series.
- ADU is never negative and forecasting never divides by zero.
- Deposit splits always sum back to the price.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from clinic_engines.availability import available_slots, generate_slots
from clinic_engines.forecast import average_daily_use, stockout_projection
from clinic_engines.revenue import ReportPeriod, recognized_revenue
from clinic_kernel.domain.appointment import (
    AppointmentSnapshot,
    AppointmentStatus,
    PaymentStatus,
    deposit_split,
)
from clinic_kernel.domain.availability import (
    WEEKDAY_NAMES,
    AvailabilityProfile,
    LunchWindow,
    minutes_of,
    time_of,
)
from clinic_kernel.domain.consumption import UsageRecord
from clinic_kernel.domain.inventory import InventoryItemInfo
from clinic_kernel.exceptions import InsufficientDataError

MONDAY = date(2024, 3, 4)
PROPERTY_SETTINGS = settings(
    max_examples=150,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


@st.composite
def profiles(draw):
    start = draw(st.integers(6 * 4, 12 * 4)) * 15
    end = min(start + draw(st.integers(4, 40)) * 15, 23 * 60)
    lunch = None
    if draw(st.booleans()):
        lunch_start = draw(st.integers(start, end - 15))
        lunch_end = draw(st.integers(lunch_start + 1, end))
        lunch = LunchWindow(time_of(lunch_start), time_of(lunch_end))
    return AvailabilityProfile(
        staff_member="Dr. Reyes",
        working_days=frozenset(WEEKDAY_NAMES[:5]),
        start_time=time_of(start),
        end_time=time_of(end),
        appointment_duration=draw(st.integers(5, 120)),
        break_time=draw(st.integers(0, 30)),
        lunch=lunch,
    )


@st.composite
def appointments(draw):
    day = date(2024, 1, 1) + timedelta(days=draw(st.integers(0, 181)))
    return AppointmentSnapshot(
        id=uuid4(),
        pet_name="Mochi",
        owner_name="Ana Santos",
        phone="0917-555-0100",
        email="ana.santos@example.com",
        date=day,
        time=time(10, 0),
        staff_member="Dr. Reyes",
        status=draw(st.sampled_from(list(AppointmentStatus))),
        price=Decimal(draw(st.integers(0, 5000))),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        payment_status=draw(st.sampled_from([None, *PaymentStatus])),
        service_type=draw(st.sampled_from([None, "consultation", "vaccination"])),
    )


class TestSlotProperties:

    @given(profile=profiles())
    @PROPERTY_SETTINGS
    def test_slots_within_hours_and_outside_lunch(self, profile):
        slots = generate_slots(profile, day=MONDAY)
        duration = profile.appointment_duration

        for slot in slots:
            start = minutes_of(slot)
            assert start >= minutes_of(profile.start_time)
            assert start + duration <= minutes_of(profile.end_time)
            if profile.lunch is not None:
                assert not profile.lunch.overlaps(start, start + duration)

        minutes = [minutes_of(s) for s in slots]
        assert minutes == sorted(set(minutes))
        assert all((m - minutes_of(profile.start_time)) % duration == 0 for m in minutes)

    @given(profile=profiles())
    @PROPERTY_SETTINGS
    def test_deterministic(self, profile):
        assert generate_slots(profile, day=MONDAY) == generate_slots(profile, day=MONDAY)

    @given(profile=profiles(), data=st.data())
    @PROPERTY_SETTINGS
    def test_open_slots_respect_spacing(self, profile, data):
        slots = generate_slots(profile, day=MONDAY)
        existing = data.draw(st.lists(st.sampled_from(slots), max_size=4)) if slots else []

        open_slots = available_slots(profile, day=MONDAY, existing=existing)

        assert set(open_slots) <= set(slots)
        for slot in open_slots:
            for other in existing:
                assert abs(minutes_of(slot) - minutes_of(other)) >= profile.min_spacing


class TestRevenueProperties:

    @given(
        batch=st.lists(appointments(), max_size=25),
        period=st.sampled_from([
            ReportPeriod.month(2024, 3),
            ReportPeriod(date(2024, 1, 1), date(2024, 6, 30)),
        ]),
    )
    @PROPERTY_SETTINGS
    def test_total_matches_recognizable_sum(self, batch, period):
        expected = sum(
            (
                a.price
                for a in batch
                if a.status is AppointmentStatus.APPROVED
                and a.price > 0
                and a.payment_status is PaymentStatus.FULLY_PAID
                and a.date in period
            ),
            Decimal("0"),
        )

        series = recognized_revenue(batch, period=period)

        assert series.total == expected
        assert all(p.amount >= 0 for p in series.points)
        assert recognized_revenue(batch, period=period) == series


class TestForecastProperties:

    @given(
        quantities=st.lists(
            st.tuples(st.integers(1, 50), st.integers(0, 30)), max_size=30,
        ),
        stock=st.integers(0, 500),
    )
    @PROPERTY_SETTINGS
    def test_adu_non_negative_and_projection_safe(self, quantities, stock):
        history = [
            UsageRecord("Amoxicillin 250mg", qty, MONDAY + timedelta(days=offset))
            for qty, offset in quantities
        ]
        item = InventoryItemInfo(
            id=uuid4(), name="Amoxicillin 250mg", category="Medicine",
            stock=stock, price=Decimal("12.50"),
        )

        adu = average_daily_use(history, item.name)

        assert adu >= 0
        if not history:
            assert adu == 0
            with pytest.raises(InsufficientDataError):
                stockout_projection(item, adu=adu)
            return

        projection = stockout_projection(item, adu=adu)
        assert projection.points[0].projected_stock == Decimal(stock)
        assert projection.points[-1].projected_stock == 0
        assert all(p.projected_stock >= 0 for p in projection.points)


class TestDepositProperties:

    @given(price=st.decimals(min_value=0, max_value=100000, places=2))
    @PROPERTY_SETTINGS
    def test_split_sums_to_price(self, price):
        deposit, remaining = deposit_split(price, Decimal("0.30"))

        assert deposit + remaining == price
        assert deposit >= 0
        assert remaining >= 0
