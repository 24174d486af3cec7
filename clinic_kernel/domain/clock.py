"""
Clock -- injectable time source.

Responsibility:
    Services stamp ``created_at``, ``logged_at``, ``approved_at`` and payment
    confirmation times from a Clock passed in at construction.  Domain and
    engine code never call ``datetime.now()`` or ``date.today()``.

Architecture position:
    Kernel > Domain.  Pure except for SystemClock, the one sanctioned I/O
    boundary for time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``.
        - ``today(tz)`` is the calendar day of ``now()`` in ``tz``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self, tz: tzinfo = timezone.utc) -> date:
        """Calendar day of the current instant in the clinic's timezone."""
        return self.now().astimezone(tz).date()


class SystemClock(Clock):
    """Production clock returning real UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``advance()`` or ``set_time()``
    is called.  Naive datetimes passed in are taken to be UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = _aware(
            fixed_time or datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc)
        )
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, when: datetime) -> None:
        self._fixed_time = _aware(when)
        self._offset = timedelta(0)

    def advance(self, seconds: int = 0, *, days: int = 0) -> None:
        self._offset += timedelta(days=days, seconds=seconds)

    def tick(self) -> datetime:
        """Advance by 1 second and return new time."""
        self.advance(1)
        return self.now()


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
