# Overview: Service-layer operations for concurrency; owns the transaction boundary.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


class ConcurrencyConflict(Exception):
    """Raised by a transaction body that lost a race it can detect itself."""


class TransactionAbortedError(Exception):
    """Raised when a transaction could not commit within its retry budget."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


RETRYABLE_ERRORS = (OperationalError, StaleDataError, ConcurrencyConflict)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func() as one unit of work and commit it.

    - Commit on success, return func's result.
    - Any exception rolls the whole session back (no partial writes).
    - OperationalError (deadlocks, locks), StaleDataError (optimistic version
      conflicts) and ConcurrencyConflict re-run func from scratch after an
      exponential backoff; once the budget is spent TransactionAbortedError
      is raised.
    - Every other exception is re-raised unchanged after rollback.

    func is re-executed on retry, so it must read everything it needs from
    the session on each call and must not touch anything outside it.
    """
    if attempts is None:
        attempts = current_app.config.get("TRANSFER_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TRANSFER_RETRY_BACKOFF", 0.1)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise TransactionAbortedError(
                    f"Transaction aborted after {attempts} attempts: {exc}",
                    attempts=attempts,
                ) from exc
            logger.warning(
                "Transaction conflict (attempt %d/%d): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
