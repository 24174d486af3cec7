"""
Typed Exception Hierarchy for the Clinic Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every failure the kernel can report is a distinct class with a
machine-readable ``code`` and structured attributes.  Callers catch by type
and read fields; they never parse messages.

    try:
        ledger.transition_status(appointment_id, AppointmentStatus.APPROVED, ctx)
    except InvalidTransitionError as e:
        api_response(code=e.code, current=e.from_state, requested=e.to_state)

Every failure is per-operation.  Nothing here is fatal to the process, and
only ConcurrencyConflictError is designed to be retried (re-read, re-apply).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ClinicKernelError (base)
    |
    +-- ValidationError
    |   +-- InsufficientStockError
    |
    +-- InvalidTransitionError
    |
    +-- SlotUnavailableError
    |
    +-- NotFoundError
    |   +-- AppointmentNotFoundError
    |   +-- ConsumptionLineNotFoundError
    |   +-- InventoryItemNotFoundError
    |   +-- AvailabilityProfileNotFoundError
    |
    +-- ConcurrencyConflictError
    |
    +-- InsufficientDataError
    |
    +-- AccessDeniedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                          | When Raised
------------------------------|-------------------------------------------------
VALIDATION_ERROR              | Missing/malformed input (user-correctable)
INSUFFICIENT_STOCK            | Confirm would drive stock below zero
INVALID_TRANSITION            | Status, payment or deduction state violation
SLOT_UNAVAILABLE              | Booking outside generated slots / too close
NOT_FOUND                     | Unknown identity (generic)
APPOINTMENT_NOT_FOUND         | Appointment ID doesn't exist
CONSUMPTION_LINE_NOT_FOUND    | Consumption line ID doesn't exist
INVENTORY_ITEM_NOT_FOUND      | Inventory item ID doesn't exist
AVAILABILITY_PROFILE_NOT_FOUND| Staff member has no availability profile
CONCURRENCY_CONFLICT          | Lost the optimistic version race; retry
INSUFFICIENT_DATA             | Forecast requested with no usable ADU
ACCESS_DENIED                 | Caller's role may not perform the operation
"""

from typing import Any


class ClinicKernelError(Exception):
    """Base exception for all clinic kernel errors."""

    code: str = "CLINIC_KERNEL_ERROR"


# =============================================================================
# Validation
# =============================================================================


class ValidationError(ClinicKernelError):
    """Malformed or missing input.

    ``field`` names the offending input when a single field is at fault.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InsufficientStockError(ValidationError):
    """Confirming a consumption line would take stock below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, stock: int, requested: int):
        self.item_id = item_id
        self.stock = stock
        self.requested = requested
        super().__init__(
            f"Item {item_id} has stock {stock}, cannot deduct {requested}",
            field="quantity",
        )


# =============================================================================
# State machine
# =============================================================================


class InvalidTransitionError(ClinicKernelError):
    """A state machine rejected the requested move.

    ``machine`` is one of ``appointment_status``, ``payment_status`` or
    ``deduction_status``.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        machine: str,
        entity_id: str,
        from_state: str | None,
        to_state: str,
        detail: str | None = None,
    ):
        self.machine = machine
        self.entity_id = entity_id
        self.from_state = from_state
        self.to_state = to_state
        message = (
            f"Cannot move {machine} of {entity_id} "
            f"from {from_state or '(absent)'} to {to_state}"
        )
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# =============================================================================
# Booking
# =============================================================================


class SlotUnavailableError(ClinicKernelError):
    """Requested booking is not offered by the staff member's profile."""

    code: str = "SLOT_UNAVAILABLE"

    def __init__(self, staff_member: str, day: Any, at: Any, reason: str):
        self.staff_member = staff_member
        self.day = str(day)
        self.at = str(at)
        self.reason = reason
        super().__init__(
            f"Slot {self.day} {self.at} unavailable for {staff_member}: {reason}"
        )


# =============================================================================
# Lookup
# =============================================================================


class NotFoundError(ClinicKernelError):
    """Unknown identity."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class AppointmentNotFoundError(NotFoundError):
    code: str = "APPOINTMENT_NOT_FOUND"

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__("Appointment", appointment_id)


class ConsumptionLineNotFoundError(NotFoundError):
    code: str = "CONSUMPTION_LINE_NOT_FOUND"

    def __init__(self, line_id: str):
        self.line_id = line_id
        super().__init__("ConsumptionLine", line_id)


class InventoryItemNotFoundError(NotFoundError):
    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("InventoryItem", item_id)


class AvailabilityProfileNotFoundError(NotFoundError):
    code: str = "AVAILABILITY_PROFILE_NOT_FOUND"

    def __init__(self, staff_member: str):
        self.staff_member = staff_member
        super().__init__("AvailabilityProfile", staff_member)


# =============================================================================
# Concurrency
# =============================================================================


class ConcurrencyConflictError(ClinicKernelError):
    """Another writer updated the record first.

    Safe to retry: re-read the record and re-apply the operation.
    """

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} was modified concurrently"
        )


# =============================================================================
# Forecasting
# =============================================================================


class InsufficientDataError(ClinicKernelError):
    """Forecast requested for an item with no usable consumption history."""

    code: str = "INSUFFICIENT_DATA"

    def __init__(self, item_name: str, reason: str = "average daily use is zero"):
        self.item_name = item_name
        self.reason = reason
        super().__init__(f"Cannot forecast {item_name}: {reason}")


# =============================================================================
# Authorization
# =============================================================================


class AccessDeniedError(ClinicKernelError):
    """The access context's role does not permit the operation."""

    code: str = "ACCESS_DENIED"

    def __init__(self, identity: str, role: str, action: str):
        self.identity = identity
        self.role = role
        self.action = action
        super().__init__(f"{role} {identity} may not {action}")
