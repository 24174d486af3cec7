"""
Status-change notifications.

The ledger hands every status transition to a ``Notifier``.  Delivery
(email, SMS) is an outer-layer concern; the kernel ships
``LoggingNotifier``, which records the message it would send, and
``NullNotifier`` for callers that want silence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Protocol
from uuid import UUID

from clinic_kernel.domain.appointment import AppointmentStatus
from clinic_kernel.logging_config import get_logger

logger = get_logger("services.notifications")

_SUBJECTS: dict[AppointmentStatus, str] = {
    AppointmentStatus.APPROVED: "Appointment Approved",
    AppointmentStatus.REJECTED: "Appointment Update",
    AppointmentStatus.CANCELLED: "Appointment Cancelled",
    AppointmentStatus.RESCHEDULED: "Appointment Rescheduled",
}


@dataclass(frozen=True)
class StatusNotification:
    appointment_id: UUID
    recipient: str
    owner_name: str
    pet_name: str
    status: AppointmentStatus
    date: date
    time: time
    staff_member: str
    reason: str | None = None
    new_date: date | None = None
    new_time: time | None = None


def subject_for(notification: StatusNotification, clinic_name: str) -> str | None:
    """Email subject for a status, or None when owners are not told."""
    base = _SUBJECTS.get(notification.status)
    if base is None:
        return None
    return f"{base} - {clinic_name}"


class Notifier(Protocol):
    def notify(self, notification: StatusNotification) -> None: ...


class NullNotifier:
    def notify(self, notification: StatusNotification) -> None:
        return None


class LoggingNotifier:
    """Logs the owner-facing message for each notifiable status change."""

    def __init__(self, clinic_name: str = "FURSURE Veterinary Clinic"):
        self.clinic_name = clinic_name

    def notify(self, notification: StatusNotification) -> None:
        subject = subject_for(notification, self.clinic_name)
        if subject is None:
            return
        logger.info(
            "appointment_notification",
            extra={
                "appointment_id": str(notification.appointment_id),
                "recipient": notification.recipient,
                "subject": subject,
                "status": notification.status.value,
                "appointment_date": notification.date,
                "appointment_time": notification.time,
                "reason": notification.reason,
                "new_date": notification.new_date,
                "new_time": notification.new_time,
            },
        )
