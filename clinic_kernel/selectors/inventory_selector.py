"""
Module: clinic_kernel.selectors.inventory_selector
Responsibility: Read-side queries over inventory items and consumption lines.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from clinic_kernel.domain.consumption import ConsumptionLineRecord, DeductionStatus
from clinic_kernel.domain.inventory import InventoryItemInfo
from clinic_kernel.exceptions import ConsumptionLineNotFoundError, InventoryItemNotFoundError
from clinic_kernel.models.consumption import ConsumptionLineModel
from clinic_kernel.models.inventory import InventoryItemModel
from clinic_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector):

    def get_item(self, item_id: UUID) -> InventoryItemInfo:
        model = self.session.get(InventoryItemModel, item_id)
        if model is None:
            raise InventoryItemNotFoundError(str(item_id))
        return model.to_dto()

    def list_items(self) -> list[InventoryItemInfo]:
        stmt = select(InventoryItemModel).order_by(InventoryItemModel.name)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def get_line(self, line_id: UUID) -> ConsumptionLineRecord:
        model = self.session.get(ConsumptionLineModel, line_id)
        if model is None:
            raise ConsumptionLineNotFoundError(str(line_id))
        return model.to_dto()

    def lines_for_appointment(
        self,
        appointment_id: UUID,
        status: DeductionStatus | None = None,
    ) -> list[ConsumptionLineRecord]:
        stmt = select(ConsumptionLineModel).where(
            ConsumptionLineModel.appointment_id == appointment_id
        )
        if status is not None:
            stmt = stmt.where(ConsumptionLineModel.deduction_status == status.value)
        stmt = stmt.order_by(ConsumptionLineModel.logged_at, ConsumptionLineModel.id)
        return [m.to_dto() for m in self.session.scalars(stmt)]

    def pending_lines(self) -> list[ConsumptionLineRecord]:
        """Every line awaiting a staff decision, oldest first."""
        stmt = (
            select(ConsumptionLineModel)
            .where(ConsumptionLineModel.deduction_status == DeductionStatus.PENDING.value)
            .order_by(ConsumptionLineModel.logged_at, ConsumptionLineModel.id)
        )
        return [m.to_dto() for m in self.session.scalars(stmt)]
