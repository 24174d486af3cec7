"""
Retry helper for optimistic concurrency conflicts.

``retry_on_conflict`` runs an operation in a fresh transaction, committing
on success.  When the operation (or its commit) loses a version race it
rolls back and tries again with newly read state, up to ``max_retries``
extra attempts.  Every other error propagates on the first attempt.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from clinic_kernel.db.engine import session_scope
from clinic_kernel.exceptions import ConcurrencyConflictError
from clinic_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")


def retry_on_conflict(
    operation: Callable[[Session], T],
    *,
    max_retries: int = 3,
    session_factory: sessionmaker[Session] | None = None,
) -> T:
    """Run ``operation(session)`` and commit, retrying on ConcurrencyConflictError.

    Raises:
        ConcurrencyConflictError: still conflicting after ``max_retries`` retries.
    """
    attempt = 0
    while True:
        try:
            with session_scope(session_factory) as session:
                return operation(session)
        except (ConcurrencyConflictError, StaleDataError) as exc:
            if attempt >= max_retries:
                logger.error(
                    "concurrency_retries_exhausted",
                    extra={"attempts": attempt + 1},
                )
                if isinstance(exc, ConcurrencyConflictError):
                    raise
                raise ConcurrencyConflictError("unknown", "commit") from exc
            attempt += 1
            logger.info("concurrency_retry", extra={"attempt": attempt, "max_retries": max_retries})
