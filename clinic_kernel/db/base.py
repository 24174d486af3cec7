"""
Module: clinic_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the UUID primary key convention, the type annotation map, and the
    timestamp normalization helper.
Architecture position: Kernel > DB.  The lowest-level import target within
    the kernel.  MUST NOT import from models/, services/, selectors/, or
    outer layers.

Invariants enforced:
    - UUID primary keys (uuid4), stored as String(36) for portability
      between SQLite and PostgreSQL.
    - Decimal maps to Numeric(38, 9); prices are never floats.
    - Timestamps are stored in UTC.  Backends that drop the offset
      (SQLite) are read back through ``as_utc``.
    - Rows mutated by concurrent sessions declare a ``version`` column as
      their ``version_id_col``: an UPDATE that finds a newer version
      raises StaleDataError (at-most-one-writer-wins per record).
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as its 36-character string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime converted to UTC before it is bound."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        return as_utc(value)


class Base(DeclarativeBase):
    """
    Declarative base for all clinic models.

    Guarantees:
        - id is a uuid4-generated UUID.
        - Decimal -> Numeric(38, 9), datetime -> UTCDateTime,
          int -> Integer.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: Integer,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a loaded timestamp to an aware UTC datetime."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UUID = PyUUID
