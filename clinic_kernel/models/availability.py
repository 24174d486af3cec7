"""
Module: clinic_kernel.models.availability
Responsibility: ORM persistence for staff availability profiles, one per
    staff member.

Architecture position: Kernel > Models.

Invariants enforced:
    - UNIQUE(staff_member): one profile per staff member.
    - Values are validated by the AvailabilityProfile value object on the
      way in (from_dto) and again on the way out (to_dto).
"""

from datetime import time

from sqlalchemy import Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import Base
from clinic_kernel.domain.availability import (
    WEEKDAY_NAMES,
    AvailabilityProfile,
    LunchWindow,
)


class AvailabilityProfileModel(Base):
    __tablename__ = "availability_profiles"

    staff_member: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    # Comma-separated weekday names in calendar order, e.g. "Monday,Tuesday"
    working_days: Mapped[str] = mapped_column(String(100), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    appointment_duration: Mapped[int] = mapped_column(Integer, nullable=False)
    break_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lunch_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    lunch_end: Mapped[time | None] = mapped_column(Time, nullable=True)

    def to_dto(self) -> AvailabilityProfile:
        lunch = None
        if self.lunch_start is not None and self.lunch_end is not None:
            lunch = LunchWindow(self.lunch_start, self.lunch_end)
        return AvailabilityProfile(
            staff_member=self.staff_member,
            working_days=frozenset(d for d in self.working_days.split(",") if d),
            start_time=self.start_time,
            end_time=self.end_time,
            appointment_duration=self.appointment_duration,
            break_time=self.break_time,
            lunch=lunch,
        )

    def apply(self, profile: AvailabilityProfile) -> None:
        """Overwrite this row with ``profile``'s values."""
        self.staff_member = profile.staff_member
        self.working_days = ",".join(d for d in WEEKDAY_NAMES if d in profile.working_days)
        self.start_time = profile.start_time
        self.end_time = profile.end_time
        self.appointment_duration = profile.appointment_duration
        self.break_time = profile.break_time
        self.lunch_start = profile.lunch.start if profile.lunch else None
        self.lunch_end = profile.lunch.end if profile.lunch else None

    @classmethod
    def from_dto(cls, profile: AvailabilityProfile) -> "AvailabilityProfileModel":
        model = cls()
        model.apply(profile)
        return model
