"""
clinic_kernel.services.inventory_reconciler -- consumption line lifecycle.

Responsibility:
    Records items used during an appointment as pending consumption lines
    and applies staff decisions to them.  Confirming a line is the only
    path by which clinical usage decreases ``InventoryItem.stock``.

Architecture position:
    Kernel > Services.  AppointmentLedger delegates add/decide calls here.

Invariants enforced:
    - A line affects stock iff it is confirmed.  Logging and rejecting
      never touch stock.
    - Exactly-once deduction: ``confirm`` checks the line is still pending
      and, in the same flush, marks it confirmed and decrements stock.  A
      second confirm fails the pending guard; a concurrent confirm fails
      the row version check.  There is no separate dedup table.
    - Confirmed and rejected lines are terminal.
    - At most one pending line per (appointment, item).  A concurrent log
      that loses the insert race surfaces as ConcurrencyConflictError; a
      retry then finds and replaces the winning line.
    - Stock does not go negative unless ``allow_negative_stock`` is set.

Failure modes:
    - ValidationError: qty not a positive integer, missing reject reason,
      appointment not approved.
    - InsufficientStockError: confirm would take stock below zero.
    - InvalidTransitionError: deciding a line that is not pending.
    - NotFoundError subclasses for unknown appointment, item or line.
    - ConcurrencyConflictError: another session decided the line or moved
      the item's stock first.
    - AccessDeniedError: owners may not log usage; only staff may decide.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_kernel.domain.access import CLINIC_ROLES, AccessContext, Role
from clinic_kernel.domain.appointment import AppointmentStatus
from clinic_kernel.domain.clock import Clock
from clinic_kernel.domain.consumption import (
    DEDUCTION_TRANSITIONS,
    ConsumptionLineRecord,
    DeductionStatus,
)
from clinic_kernel.exceptions import (
    AppointmentNotFoundError,
    ConcurrencyConflictError,
    ConsumptionLineNotFoundError,
    InsufficientStockError,
    InvalidTransitionError,
    InventoryItemNotFoundError,
    ValidationError,
)
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_kernel.models.appointment import AppointmentModel
from clinic_kernel.models.consumption import ConsumptionLineModel
from clinic_kernel.models.inventory import InventoryItemModel
from clinic_kernel.services.base import BaseService

logger = get_logger("services.inventory_reconciler")

_DECIDERS = frozenset({Role.STAFF})


class InventoryReconciler(BaseService):
    """Consumption line lifecycle and exactly-once stock deduction."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        allow_negative_stock: bool = False,
    ):
        super().__init__(session, clock)
        self.allow_negative_stock = allow_negative_stock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _line(self, line_id: UUID) -> ConsumptionLineModel:
        line = self.session.get(ConsumptionLineModel, line_id)
        if line is None:
            raise ConsumptionLineNotFoundError(str(line_id))
        return line

    def _item(self, item_id: UUID) -> InventoryItemModel:
        item = self.session.get(InventoryItemModel, item_id)
        if item is None:
            raise InventoryItemNotFoundError(str(item_id))
        return item

    def _pending_line(self, appointment_id: UUID, item_id: UUID) -> ConsumptionLineModel | None:
        return self.session.scalars(
            select(ConsumptionLineModel).where(
                ConsumptionLineModel.appointment_id == appointment_id,
                ConsumptionLineModel.item_id == item_id,
                ConsumptionLineModel.deduction_status == DeductionStatus.PENDING.value,
            )
        ).first()

    def _require_pending(self, line: ConsumptionLineModel, target: DeductionStatus) -> None:
        current = line.status_enum
        if target not in DEDUCTION_TRANSITIONS[current]:
            raise InvalidTransitionError(
                "deduction_status", str(line.id), current.value, target.value,
            )

    # ------------------------------------------------------------------
    # Logging usage
    # ------------------------------------------------------------------

    def log_usage(
        self,
        appointment_id: UUID,
        item_id: UUID,
        qty: int,
        access: AccessContext,
    ) -> ConsumptionLineRecord:
        """Record ``qty`` of an item used during an appointment, pending approval.

        Logging an item that already has a pending line on the appointment
        replaces that line's quantity; decided lines are never touched.
        """
        access.require_role(CLINIC_ROLES, "log consumption")
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValidationError(f"Quantity must be a positive integer, got {qty!r}", "quantity")

        appointment = self.session.get(AppointmentModel, appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(str(appointment_id))
        if appointment.status_enum is not AppointmentStatus.APPROVED:
            raise ValidationError(
                f"Consumption can only be logged against an approved appointment "
                f"(status is {appointment.status})",
                "appointment_id",
            )
        item = self._item(item_id)

        line = self._pending_line(appointment_id, item_id)

        now = self.clock.now()
        replaced = line is not None
        if line is None:
            line = ConsumptionLineModel(
                id=uuid4(),
                appointment_id=appointment_id,
                item_id=item_id,
                item_name=item.name,
                category=item.category,
                quantity=qty,
                deduction_status=DeductionStatus.PENDING.value,
                logged_at=now,
                logged_by=access.identity,
            )
            appointment.consumption_lines.append(line)
        else:
            line.quantity = qty
            line.logged_at = now
            line.logged_by = access.identity
        try:
            self._flush("ConsumptionLine", line.id)
        except IntegrityError as exc:
            # another session inserted the pending line for this item first
            logger.warning(
                "concurrency_conflict",
                extra={"entity_type": "ConsumptionLine", "entity_id": str(line.id)},
            )
            raise ConcurrencyConflictError("ConsumptionLine", str(line.id)) from exc

        logger.info(
            "consumption_line_logged",
            extra={
                "line_id": str(line.id),
                "appointment_id": str(appointment_id),
                "item_id": str(item_id),
                "item_name": item.name,
                "quantity": qty,
                "replaced_pending": replaced,
            },
        )
        return line.to_dto()

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def confirm(self, line_id: UUID, access: AccessContext) -> ConsumptionLineRecord:
        """Approve a pending line and deduct its quantity from stock, once."""
        access.require_role(_DECIDERS, "confirm consumption")
        line = self._line(line_id)

        with LogContext.bind(line_id=line_id, appointment_id=line.appointment_id):
            self._require_pending(line, DeductionStatus.CONFIRMED)
            item = self._item(line.item_id)

            remaining = item.stock - line.quantity
            if remaining < 0 and not self.allow_negative_stock:
                raise InsufficientStockError(str(item.id), item.stock, line.quantity)

            stock_before = item.stock
            item.stock = remaining
            line.deduction_status = DeductionStatus.CONFIRMED.value
            line.approved_by = access.identity
            line.approved_at = self.clock.now()
            self._flush("ConsumptionLine", line.id)

            logger.info(
                "consumption_line_confirmed",
                extra={
                    "item_id": str(item.id),
                    "item_name": item.name,
                    "quantity": line.quantity,
                    "stock_before": stock_before,
                    "stock_after": remaining,
                    "approved_by": access.identity,
                },
            )
        return line.to_dto()

    def reject(
        self,
        line_id: UUID,
        access: AccessContext,
        reason: str,
    ) -> ConsumptionLineRecord:
        """Reject a pending line.  Stock is never touched."""
        access.require_role(_DECIDERS, "reject consumption")
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required", "reason")
        line = self._line(line_id)

        with LogContext.bind(line_id=line_id, appointment_id=line.appointment_id):
            self._require_pending(line, DeductionStatus.REJECTED)
            line.deduction_status = DeductionStatus.REJECTED.value
            line.rejection_reason = reason.strip()
            line.approved_by = access.identity
            line.approved_at = self.clock.now()
            self._flush("ConsumptionLine", line.id)

            logger.info(
                "consumption_line_rejected",
                extra={"item_name": line.item_name, "reason": line.rejection_reason},
            )
        return line.to_dto()

    def confirm_all(
        self, appointment_id: UUID, access: AccessContext
    ) -> list[ConsumptionLineRecord]:
        """Confirm every pending line on an appointment.

        All or nothing within the caller's transaction: if one line fails
        (for example on insufficient stock) the error propagates and the
        caller rolls back.
        """
        access.require_role(_DECIDERS, "confirm consumption")
        if self.session.get(AppointmentModel, appointment_id) is None:
            raise AppointmentNotFoundError(str(appointment_id))

        pending_ids = list(
            self.session.scalars(
                select(ConsumptionLineModel.id)
                .where(
                    ConsumptionLineModel.appointment_id == appointment_id,
                    ConsumptionLineModel.deduction_status == DeductionStatus.PENDING.value,
                )
                .order_by(ConsumptionLineModel.logged_at, ConsumptionLineModel.id)
            )
        )
        confirmed = [self.confirm(line_id, access) for line_id in pending_ids]
        logger.info(
            "consumption_lines_batch_confirmed",
            extra={"appointment_id": str(appointment_id), "count": len(confirmed)},
        )
        return confirmed
