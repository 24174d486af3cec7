"""
Access context (``clinic_kernel.domain.access``).

Responsibility
--------------
The caller's identity and role, constructed once per request by the
authorization collaborator and passed explicitly into every ledger query
and mutation.  Core logic never looks up a "current user" from ambient
state.

Policy
------
* owner     -- sees and acts on appointments whose contact email matches
               ``identity`` (case-insensitive); may book, cancel and pay
               the deposit.
* clinician -- sees all appointments; may log consumption.
* staff     -- sees all appointments; may approve/reject bookings and
               confirm/reject consumption lines.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from clinic_kernel.exceptions import AccessDeniedError, ValidationError


class Role(str, Enum):
    OWNER = "owner"
    CLINICIAN = "clinician"
    STAFF = "staff"


CLINIC_ROLES: frozenset[Role] = frozenset({Role.CLINICIAN, Role.STAFF})


@dataclass(frozen=True)
class AccessContext:
    """Who is calling, and in what capacity."""

    identity: str
    role: Role

    def __post_init__(self) -> None:
        if not self.identity or not self.identity.strip():
            raise ValidationError("Access context requires an identity", "identity")
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    @property
    def is_owner(self) -> bool:
        return self.role is Role.OWNER

    def owns(self, email: str) -> bool:
        """True if ``email`` is this caller's contact address."""
        return self.identity.strip().casefold() == (email or "").strip().casefold()

    def can_view(self, email: str) -> bool:
        return not self.is_owner or self.owns(email)

    def require_role(self, allowed: Iterable[Role], action: str) -> None:
        if self.role not in frozenset(allowed):
            raise AccessDeniedError(self.identity, self.role.value, action)

    def require_owner_of(self, email: str, action: str) -> None:
        """Clinic roles pass; owners must own the appointment."""
        if self.is_owner and not self.owns(email):
            raise AccessDeniedError(self.identity, self.role.value, action)
