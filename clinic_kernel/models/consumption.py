"""
Module: clinic_kernel.models.consumption
Responsibility: ORM persistence for consumption lines (items used during an
    appointment, awaiting or past staff approval).

Architecture position: Kernel > Models.

Invariants enforced:
    - deduction_status limited to pending/confirmed/rejected.
    - quantity > 0 (CHECK constraint).
    - At most one pending line per (appointment, item) (partial unique index).
    - ``version`` guards the pending -> confirmed transition: two sessions
      confirming the same line cannot both flush.
    - item_name/category are snapshots taken when the line was logged, so
      history survives an item being renamed.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_kernel.db.base import Base, UUIDString, as_utc
from clinic_kernel.domain.consumption import ConsumptionLineRecord, DeductionStatus

if TYPE_CHECKING:
    from clinic_kernel.models.appointment import AppointmentModel


class ConsumptionLineModel(Base):
    __tablename__ = "consumption_lines"

    __table_args__ = (
        CheckConstraint(
            "deduction_status IN ('pending', 'confirmed', 'rejected')",
            name="ck_consumption_lines_valid_status",
        ),
        CheckConstraint("quantity > 0", name="ck_consumption_lines_positive_qty"),
        Index("ix_consumption_lines_appointment", "appointment_id"),
        Index("ix_consumption_lines_item_status", "item_id", "deduction_status"),
        Index(
            "uq_consumption_lines_one_pending",
            "appointment_id",
            "item_id",
            unique=True,
            sqlite_where=text("deduction_status = 'pending'"),
            postgresql_where=text("deduction_status = 'pending'"),
        ),
    )

    appointment_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("appointments.id"), nullable=False,
    )
    item_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("inventory_items.id"), nullable=False,
    )
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    deduction_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    logged_at: Mapped[datetime] = mapped_column(nullable=False)
    logged_by: Mapped[str] = mapped_column(String(320), nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    appointment: Mapped[AppointmentModel] = relationship(
        back_populates="consumption_lines",
    )

    @property
    def status_enum(self) -> DeductionStatus:
        return DeductionStatus(self.deduction_status)

    def to_dto(self) -> ConsumptionLineRecord:
        return ConsumptionLineRecord(
            id=self.id,
            appointment_id=self.appointment_id,
            item_id=self.item_id,
            item_name=self.item_name,
            category=self.category,
            quantity=self.quantity,
            deduction_status=self.status_enum,
            logged_at=as_utc(self.logged_at),
            logged_by=self.logged_by,
            rejection_reason=self.rejection_reason,
            approved_by=self.approved_by,
            approved_at=as_utc(self.approved_at),
        )

    def __repr__(self) -> str:
        return f"<ConsumptionLine {self.id} {self.item_name} x{self.quantity} {self.deduction_status}>"
