"""
Module: clinic_kernel.selectors.appointment_selector
Responsibility: Read-side queries over appointments: access-filtered lists,
    booking conflicts, display numbers, status history and confirmed usage
    history for forecasting.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every caller-facing query takes an AccessContext.  Owners only ever
      see appointments whose email matches their identity
      (case-insensitive); clinicians and staff see everything.
    - An owner asking for someone else's appointment gets NotFound, not
      AccessDenied, so identities are not disclosed.
"""

from __future__ import annotations

from datetime import date, time
from uuid import UUID

from sqlalchemy import Select, func, select

from clinic_kernel.domain.access import AccessContext
from clinic_kernel.domain.appointment import (
    ACTIVE_APPOINTMENT_STATUSES,
    AppointmentSnapshot,
    StatusChange,
)
from clinic_kernel.domain.consumption import DeductionStatus, UsageRecord
from clinic_kernel.exceptions import AppointmentNotFoundError
from clinic_kernel.models.appointment import AppointmentModel, StatusChangeModel
from clinic_kernel.models.consumption import ConsumptionLineModel
from clinic_kernel.selectors.base import BaseSelector

_ACTIVE = tuple(s.value for s in ACTIVE_APPOINTMENT_STATUSES)


class AppointmentSelector(BaseSelector):

    def _visible(self, stmt: Select, access: AccessContext) -> Select:
        if access.is_owner:
            stmt = stmt.where(
                func.lower(AppointmentModel.email) == access.identity.strip().lower()
            )
        return stmt

    def _ordered(self, stmt: Select) -> list[AppointmentSnapshot]:
        stmt = stmt.order_by(
            AppointmentModel.appointment_date,
            AppointmentModel.appointment_time,
            AppointmentModel.created_at,
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def get(self, appointment_id: UUID, access: AccessContext) -> AppointmentSnapshot:
        model = self.session.get(AppointmentModel, appointment_id)
        if model is None or not access.can_view(model.email):
            raise AppointmentNotFoundError(str(appointment_id))
        return model.to_dto()

    def list_all(self, access: AccessContext) -> list[AppointmentSnapshot]:
        return self._ordered(self._visible(select(AppointmentModel), access))

    def list_by_date(self, day: date, access: AccessContext) -> list[AppointmentSnapshot]:
        stmt = select(AppointmentModel).where(AppointmentModel.appointment_date == day)
        return self._ordered(self._visible(stmt, access))

    def list_for_staff(
        self, staff_member: str, access: AccessContext
    ) -> list[AppointmentSnapshot]:
        stmt = select(AppointmentModel).where(AppointmentModel.staff_member == staff_member)
        return self._ordered(self._visible(stmt, access))

    def list_every(self) -> list[AppointmentSnapshot]:
        """Every appointment, unfiltered.  Reporting use only."""
        return self._ordered(select(AppointmentModel))

    def active_booking_times(
        self,
        staff_member: str,
        day: date,
        exclude_id: UUID | None = None,
    ) -> list[time]:
        """Start times of the staff member's pending/approved bookings on ``day``."""
        stmt = select(AppointmentModel.appointment_time).where(
            AppointmentModel.staff_member == staff_member,
            AppointmentModel.appointment_date == day,
            AppointmentModel.status.in_(_ACTIVE),
        )
        if exclude_id is not None:
            stmt = stmt.where(AppointmentModel.id != exclude_id)
        return list(self.session.scalars(stmt))

    def conflicts_for(
        self, appointment_id: UUID, access: AccessContext
    ) -> list[AppointmentSnapshot]:
        """Other active bookings sharing this appointment's staff, date and time."""
        target = self.get(appointment_id, access)
        stmt = select(AppointmentModel).where(
            AppointmentModel.id != target.id,
            AppointmentModel.staff_member == target.staff_member,
            AppointmentModel.appointment_date == target.date,
            AppointmentModel.appointment_time == target.time,
            AppointmentModel.status.in_(_ACTIVE),
        )
        return self._ordered(stmt)

    def display_numbers(self) -> dict[UUID, str]:
        """``APT #n`` labels, numbered from 1 in creation order."""
        stmt = select(AppointmentModel.id).order_by(
            AppointmentModel.created_at, AppointmentModel.id
        )
        return {
            appointment_id: f"APT #{n}"
            for n, appointment_id in enumerate(self.session.scalars(stmt), start=1)
        }

    def status_history(
        self, appointment_id: UUID, access: AccessContext
    ) -> list[StatusChange]:
        self.get(appointment_id, access)
        stmt = (
            select(StatusChangeModel)
            .where(StatusChangeModel.appointment_id == appointment_id)
            .order_by(StatusChangeModel.changed_at, StatusChangeModel.id)
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def confirmed_usage(self, item_name: str | None = None) -> list[UsageRecord]:
        """Confirmed consumption, dated by the appointment it was logged on."""
        stmt = (
            select(
                ConsumptionLineModel.item_name,
                ConsumptionLineModel.quantity,
                AppointmentModel.appointment_date,
            )
            .join(AppointmentModel, ConsumptionLineModel.appointment_id == AppointmentModel.id)
            .where(ConsumptionLineModel.deduction_status == DeductionStatus.CONFIRMED.value)
        )
        if item_name is not None:
            stmt = stmt.where(ConsumptionLineModel.item_name == item_name)
        return [
            UsageRecord(item_name=name, quantity=qty, used_on=used_on)
            for name, qty, used_on in self.session.execute(stmt)
        ]
