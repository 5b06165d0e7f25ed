# Overview: Row locking and conflict retry used by the transaction coordinator.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import CommitConflict
from ..extensions import db

# Failures caused by a concurrent writer rather than by the operation itself.
CONFLICT_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Optimistic version columns cover the SQLite case.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, label: str = "operation"):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks), StaleDataError
    (optimistic locking conflicts) and IntegrityError (unique races).
    Every attempt starts from a rolled-back session, so func always
    re-reads state. When attempts run out, CommitConflict is raised
    chained to the last database error.
    """
    attempts = max(1, int(attempts))
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except CONFLICT_ERRORS as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                break
            delay = backoff_base * (2 ** attempt)
            current_app.logger.warning(
                "Conflict in %s (attempt %s/%s), retrying in %.3fs: %s",
                label, attempt + 1, attempts, delay, type(exc).__name__,
            )
            if delay > 0:
                time.sleep(delay)

    current_app.logger.error(
        "Giving up on %s after %s attempts: %s", label, attempts, last_exc
    )
    raise CommitConflict(
        f"{label} could not be committed after {attempts} attempts due to concurrent changes"
    ) from last_exc
