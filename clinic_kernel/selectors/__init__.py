"""Selectors for the clinic kernel (read side)."""

from clinic_kernel.selectors.appointment_selector import AppointmentSelector
from clinic_kernel.selectors.inventory_selector import InventorySelector

__all__ = [
    "AppointmentSelector",
    "InventorySelector",
]
