"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and flush contract for every write-side service.
    Services receive a SQLAlchemy ``Session`` and persist with
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction; the caller (``session_scope``, ``retry_on_conflict`` or a
      test) owns commit and rollback.
    - Optimistic concurrency: a flush that loses the version race surfaces
      as ``ConcurrencyConflictError``, never as a raw SQLAlchemy error.
"""

from abc import ABC

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.exceptions import ConcurrencyConflictError
from clinic_kernel.logging_config import get_logger

logger = get_logger("services.base")


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-only queries -- those live in selectors/.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def _flush(self, entity_type: str, entity_id: object) -> None:
        """Flush pending changes, mapping a lost version race to a typed error."""
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "concurrency_conflict",
                extra={"entity_type": entity_type, "entity_id": str(entity_id)},
            )
            raise ConcurrencyConflictError(entity_type, str(entity_id)) from exc
