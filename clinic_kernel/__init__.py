"""
Clinic Kernel

Appointment lifecycle and consumption reconciliation for a veterinary
clinic:
- Slot generation and break-spacing checks from staff availability
- Appointment status and payment state machines
- Consumption lines that decrement stock exactly once on confirmation
- Revenue recognition and consumption forecasting over ledger snapshots
"""

__version__ = "0.1.0"
