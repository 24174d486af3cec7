"""ORM models for the clinic kernel."""

from clinic_kernel.models.appointment import (
    AppointmentModel,
    PaymentEventModel,
    StatusChangeModel,
)
from clinic_kernel.models.availability import AvailabilityProfileModel
from clinic_kernel.models.consumption import ConsumptionLineModel
from clinic_kernel.models.inventory import InventoryItemModel

__all__ = [
    "AppointmentModel",
    "AvailabilityProfileModel",
    "ConsumptionLineModel",
    "InventoryItemModel",
    "PaymentEventModel",
    "StatusChangeModel",
]
