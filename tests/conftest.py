"""
Pytest fixtures for the clinic kernel test suite.

Provides:
- An in-memory SQLite database per test (tables created fresh each time)
- A deterministic clock starting Monday 2024-03-04 09:00 UTC
- Access contexts for each role
- Factory fixtures for profiles, bookings and inventory items
- JSON log capture
"""

import json
import logging
from datetime import date, time
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from clinic_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from clinic_kernel.domain.access import AccessContext, Role
from clinic_kernel.domain.appointment import AppointmentStatus, BookingRequest
from clinic_kernel.domain.availability import WEEKDAY_NAMES, AvailabilityProfile
from clinic_kernel.domain.clock import DeterministicClock
from clinic_kernel.domain.inventory import InventoryItemInfo
from clinic_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from clinic_kernel.models.inventory import InventoryItemModel
from clinic_kernel.services.appointment_ledger import AppointmentLedger
from clinic_kernel.services.availability_service import AvailabilityService
from clinic_kernel.services.report_service import ReportService

STAFF_MEMBER = "Dr. Reyes"
OWNER_EMAIL = "ana.santos@example.com"
MONDAY = date(2024, 3, 4)
SATURDAY = date(2024, 3, 9)
WEEKDAYS = WEEKDAY_NAMES[:5]


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture clinic_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.create(...)
            logs = captured_logs()
            assert any(r["message"] == "appointment_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("clinic_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    eng = init_engine_from_url("sqlite://")
    create_tables(eng)
    yield eng
    drop_tables(eng)
    reset_engine()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    session = get_session_factory()()
    yield session
    session.rollback()
    session.close()


# =============================================================================
# Time and identity
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Frozen at Monday 2024-03-04 09:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def owner_access() -> AccessContext:
    return AccessContext(OWNER_EMAIL, Role.OWNER)


@pytest.fixture
def other_owner_access() -> AccessContext:
    return AccessContext("ben.cruz@example.com", Role.OWNER)


@pytest.fixture
def clinician_access() -> AccessContext:
    return AccessContext("dr.reyes@fursure.test", Role.CLINICIAN)


@pytest.fixture
def staff_access() -> AccessContext:
    return AccessContext("frontdesk@fursure.test", Role.STAFF)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def weekday_profile() -> AvailabilityProfile:
    """Mon-Fri 09:00-17:00, 30 minute appointments, no break or lunch."""
    return AvailabilityProfile.from_strings(STAFF_MEMBER, WEEKDAYS, "09:00", "17:00", 30)


@pytest.fixture
def availability_service(session, deterministic_clock) -> AvailabilityService:
    return AvailabilityService(session, deterministic_clock)


@pytest.fixture
def saved_profile(availability_service, weekday_profile, staff_access):
    availability_service.set_profile(weekday_profile, staff_access)
    return weekday_profile


@pytest.fixture
def ledger(session, deterministic_clock, saved_profile) -> AppointmentLedger:
    return AppointmentLedger(session, deterministic_clock)


@pytest.fixture
def reconciler(ledger):
    return ledger.reconciler


@pytest.fixture
def reports(session) -> ReportService:
    return ReportService(session)


# =============================================================================
# Factories
# =============================================================================


def make_request(
    *,
    day: date = MONDAY,
    at: str = "10:00",
    email: str = OWNER_EMAIL,
    price: Decimal | str = Decimal("1000"),
    service_type: str | None = "consultation",
    pet_name: str = "Mochi",
    staff_member: str = STAFF_MEMBER,
) -> BookingRequest:
    hours, minutes = at.split(":")
    return BookingRequest(
        pet_name=pet_name,
        owner_name="Ana Santos",
        phone="0917-555-0100",
        email=email,
        date=day,
        time=time(int(hours), int(minutes)),
        staff_member=staff_member,
        price=Decimal(str(price)),
        service_type=service_type,
    )


@pytest.fixture
def booking_request():
    """Factory for BookingRequest with sensible defaults."""
    return make_request


@pytest.fixture
def book(ledger, staff_access, deterministic_clock):
    """Create a booking and advance the clock so creation order is stable."""

    def _book(access: AccessContext | None = None, **kwargs) -> UUID:
        appointment_id = ledger.create(make_request(**kwargs), access or staff_access)
        deterministic_clock.advance(60)
        return appointment_id

    return _book


@pytest.fixture
def approved_appointment(book, ledger, staff_access):
    """Factory: book then approve."""

    def _approved(**kwargs) -> UUID:
        appointment_id = book(**kwargs)
        ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, staff_access)
        return appointment_id

    return _approved


@pytest.fixture
def create_item(session):
    def _create(
        name: str = "Amoxicillin 250mg",
        *,
        category: str = "Medicine",
        stock: int = 20,
        price: Decimal | str = "12.50",
        reorder_point: int | None = None,
        target_level: int | None = None,
        safety_stock: int | None = None,
    ) -> UUID:
        info = InventoryItemInfo(
            id=uuid4(),
            name=name,
            category=category,
            stock=stock,
            price=Decimal(str(price)),
            reorder_point=reorder_point,
            target_level=target_level,
            safety_stock=safety_stock,
        )
        session.add(InventoryItemModel.from_dto(info))
        session.flush()
        return info.id

    return _create
