"""
clinic_kernel.services.availability_service -- staff availability profiles.

Responsibility:
    Stores one AvailabilityProfile per staff member and answers slot
    questions for a date by handing the profile and the day's active
    bookings to the pure availability engine.

Architecture position:
    Kernel > Services.  Calls clinic_engines.availability; the engine never
    calls back.

Failure modes:
    - AvailabilityProfileNotFoundError for a staff member with no profile.
    - AccessDeniedError when an owner tries to edit a profile.
"""

from __future__ import annotations

from datetime import date, time

from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_engines.availability import available_slots, generate_slots
from clinic_kernel.domain.access import CLINIC_ROLES, AccessContext
from clinic_kernel.domain.availability import AvailabilityProfile
from clinic_kernel.domain.clock import Clock
from clinic_kernel.exceptions import AvailabilityProfileNotFoundError
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models.availability import AvailabilityProfileModel
from clinic_kernel.selectors.appointment_selector import AppointmentSelector
from clinic_kernel.services.base import BaseService

logger = get_logger("services.availability")


class AvailabilityService(BaseService):

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)
        self._appointments = AppointmentSelector(session)

    def _model_for(self, staff_member: str) -> AvailabilityProfileModel | None:
        return self.session.scalars(
            select(AvailabilityProfileModel).where(
                AvailabilityProfileModel.staff_member == staff_member
            )
        ).one_or_none()

    def set_profile(self, profile: AvailabilityProfile, access: AccessContext) -> None:
        """Create or replace a staff member's profile."""
        access.require_role(CLINIC_ROLES, "edit availability")

        model = self._model_for(profile.staff_member)
        created = model is None
        if created:
            model = AvailabilityProfileModel.from_dto(profile)
            self.session.add(model)
        else:
            model.apply(profile)
        self._flush("AvailabilityProfile", profile.staff_member)

        logger.info(
            "availability_profile_saved",
            extra={
                "staff_member": profile.staff_member,
                "profile_created": created,
                "working_days": profile.working_days,
                "appointment_duration": profile.appointment_duration,
                "break_time": profile.break_time,
            },
        )

    def get_profile(self, staff_member: str) -> AvailabilityProfile:
        model = self._model_for(staff_member)
        if model is None:
            raise AvailabilityProfileNotFoundError(staff_member)
        return model.to_dto()

    def slots_for(self, staff_member: str, day: date) -> tuple[time, ...]:
        """Every slot the profile offers on ``day``, booked or not."""
        return generate_slots(self.get_profile(staff_member), day=day)

    def open_slots(self, staff_member: str, day: date) -> tuple[time, ...]:
        """Slots a new booking could take right now without any conflict."""
        profile = self.get_profile(staff_member)
        existing = self._appointments.active_booking_times(staff_member, day)
        return available_slots(profile, day=day, existing=existing)
