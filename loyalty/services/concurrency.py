"""
Locking and retry helpers for balance and stock writes.
"""
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = None, backoff_base: float = 0.1):
    """
    Execute a DB unit of work, retrying transient concurrency failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError.
    Business errors (insufficient balance, out of stock, ...) are raised
    straight through; they are terminal.
    """
    if attempts is None:
        attempts = current_app.config.get('DB_RETRY_ATTEMPTS', 3)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                f"Transient database error (attempt {attempt + 1}/{attempts}): {exc}"
            )
            time.sleep(backoff_base * (2 ** attempt))
