# Overview: Service-layer operations for concurrency; atomic units of work with retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StockbookError, StoreUnavailable
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; run_atomic() takes the
    database write lock up front there instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
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
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _begin_write():
    # SQLite: take the RESERVED lock now so competing writers queue up
    # instead of failing at commit time.
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(work, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run `work()` as one all-or-nothing unit and return its result.

    Every write made inside `work` commits together, or none does: any
    exception rolls the whole unit back. Lock/contention failures retry the
    entire unit, which is safe because a rolled-back attempt leaves no state
    behind. Domain errors propagate unchanged; persistence failures surface
    as StoreUnavailable.
    """
    config = current_app.config
    if attempts is None:
        attempts = config.get("STORE_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = config.get("STORE_RETRY_BACKOFF", 0.1)

    def _op():
        try:
            _begin_write()
            result = work()
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except StockbookError:
        raise
    except SQLAlchemyError as exc:
        current_app.logger.exception("Atomic unit of work failed; rolled back")
        raise StoreUnavailable() from exc
