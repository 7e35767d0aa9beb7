# Overview: Transaction boundaries and retry handling for lifecycle operations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id_col
    check on flush is what turns a lost race into StaleDataError.
    """
    return query.with_for_update()


def _default_attempts() -> int:
    return int(current_app.config.get("DB_RETRY_ATTEMPTS", 3))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). func is re-run from scratch, so it must
    re-read whatever state its preconditions depend on.
    """
    if attempts is None:
        attempts = _default_attempts()
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            current_app.logger.info(
                "Concurrent write conflict (attempt %s/%s): %s",
                attempt + 1, attempts, exc.__class__.__name__,
            )
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_atomic(func, *, action: str, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Run func and commit its writes as one unit.

    Entity mutations and the activity row they produce share this single
    commit; any exception rolls both back.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
        except ConflictError:
            db.session.rollback()
            current_app.logger.exception("Constraint violation during %s; rolled back", action)
            raise
        except Exception:
            db.session.rollback()
            raise
        return result

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
