"""
Module: clinic_kernel.models.appointment
Responsibility: ORM persistence for appointments, their payment events and
    their status-change history.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value types only.

Invariants enforced:
    - Status and payment status values are limited by CHECK constraints;
      the transition rules themselves live in domain.appointment and are
      applied by AppointmentLedger before any write.
    - ``version`` is the optimistic concurrency counter: two sessions that
      both load version N and both update cannot both commit.
    - Payment events and status changes are append-only.  Nothing in the
      kernel updates or deletes them.

Failure modes:
    - StaleDataError on flush when another session updated the appointment
      first (translated to ConcurrencyConflictError by the services).
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_kernel.db.base import Base, UUIDString, as_utc
from clinic_kernel.domain.appointment import (
    AppointmentSnapshot,
    AppointmentStatus,
    PaymentEvent,
    PaymentEventKind,
    PaymentMethod,
    PaymentStatus,
    StatusChange,
)
from clinic_kernel.models.consumption import ConsumptionLineModel


class AppointmentModel(Base):
    """Persistent appointment.

    Guarantees:
        - ``price`` is the service price snapshot taken at booking.
        - Cancelled, rejected and rescheduled rows are kept, never deleted.
        - ``rescheduled_from_id`` links a rebooking to the record it replaced.
    """

    __tablename__ = "appointments"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled', 'rescheduled')",
            name="ck_appointments_valid_status",
        ),
        CheckConstraint(
            "payment_status IS NULL OR payment_status IN "
            "('pending', 'down_payment_paid', 'fully_paid')",
            name="ck_appointments_valid_payment_status",
        ),
        CheckConstraint("price >= 0", name="ck_appointments_price_non_negative"),
        Index("ix_appointments_date", "appointment_date"),
        Index("ix_appointments_email", "email"),
        Index("ix_appointments_staff_date", "staff_member", "appointment_date"),
    )

    pet_name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[time] = mapped_column(Time, nullable=False)
    staff_member: Mapped[str] = mapped_column(String(200), nullable=False)
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    rescheduled_from_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("appointments.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    created_by: Mapped[str] = mapped_column(String(320), nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    payment_events: Mapped[list[PaymentEventModel]] = relationship(
        back_populates="appointment",
        order_by="PaymentEventModel.timestamp",
        lazy="selectin",
    )
    consumption_lines: Mapped[list[ConsumptionLineModel]] = relationship(
        back_populates="appointment",
        order_by="ConsumptionLineModel.logged_at",
        lazy="selectin",
    )

    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    @property
    def payment_status_enum(self) -> PaymentStatus | None:
        return PaymentStatus(self.payment_status) if self.payment_status else None

    def to_dto(self) -> AppointmentSnapshot:
        return AppointmentSnapshot(
            id=self.id,
            pet_name=self.pet_name,
            owner_name=self.owner_name,
            phone=self.phone,
            email=self.email,
            date=self.appointment_date,
            time=self.appointment_time,
            staff_member=self.staff_member,
            status=self.status_enum,
            price=self.price,
            created_at=as_utc(self.created_at),
            payment_status=self.payment_status_enum,
            service_type=self.service_type,
            reason=self.reason,
            notes=self.notes,
            status_reason=self.status_reason,
            rescheduled_from_id=self.rescheduled_from_id,
            payment_events=tuple(e.to_dto() for e in self.payment_events),
            consumption_lines=tuple(line.to_dto() for line in self.consumption_lines),
        )

    def __repr__(self) -> str:
        return (
            f"<Appointment {self.id} {self.appointment_date} {self.appointment_time} "
            f"{self.staff_member} {self.status}>"
        )


class PaymentEventModel(Base):
    """One confirmed payment against an appointment.  Append-only."""

    __tablename__ = "appointment_payment_events"

    __table_args__ = (
        CheckConstraint(
            "kind IN ('deposit', 'full_payment', 'remaining_balance')",
            name="ck_payment_events_valid_kind",
        ),
        CheckConstraint(
            "method IN ('online', 'gcash', 'paymaya', 'at_clinic')",
            name="ck_payment_events_valid_method",
        ),
        Index("ix_payment_events_appointment", "appointment_id"),
    )

    appointment_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("appointments.id"), nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    confirmed_by: Mapped[str | None] = mapped_column(String(320), nullable=True)

    appointment: Mapped[AppointmentModel] = relationship(back_populates="payment_events")

    def to_dto(self) -> PaymentEvent:
        return PaymentEvent(
            kind=PaymentEventKind(self.kind),
            timestamp=as_utc(self.timestamp),
            method=PaymentMethod(self.method),
            amount=self.amount,
            confirmed_by=self.confirmed_by,
        )


class StatusChangeModel(Base):
    """Audit row written for every appointment status transition."""

    __tablename__ = "appointment_status_changes"

    __table_args__ = (
        Index("ix_status_changes_appointment", "appointment_id", "changed_at"),
    )

    appointment_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("appointments.id"), nullable=False,
    )
    from_status: Mapped[str] = mapped_column(String(20), nullable=False)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    actor: Mapped[str] = mapped_column(String(320), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> StatusChange:
        return StatusChange(
            appointment_id=self.appointment_id,
            from_status=AppointmentStatus(self.from_status),
            to_status=AppointmentStatus(self.to_status),
            actor=self.actor,
            changed_at=as_utc(self.changed_at),
            reason=self.reason,
        )
