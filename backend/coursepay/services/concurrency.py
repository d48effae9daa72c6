# Overview: Retry and guarded-update helpers shared by checkout, settlement and withdrawals.

from __future__ import annotations

import logging
import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def guarded_update(model, *criteria, **values) -> int:
    """
    Single-statement conditional UPDATE; returns the number of rows matched.

    The WHERE clause carries the guard (e.g. used_count < max_usage,
    balance_cents >= amount), so concurrent writers cannot both pass it.
    Models with an optimistic version column get it bumped in the same
    statement so ORM copies already in the session stay consistent.
    """
    if hasattr(model, "version_id") and "version_id" not in values:
        values["version_id"] = model.version_id + 1

    stmt = (
        update(model)
        .where(*criteria)
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    result = db.session.execute(stmt)
    return result.rowcount


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Retries on OperationalError (locked database, deadlocks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before each
    retry so the whole unit starts over, discount consumption included.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying unit of work after %s (attempt %d/%d)", type(exc).__name__, attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
