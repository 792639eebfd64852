# Overview: Retry wrapper for units of work that can lose a write race.

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

T = TypeVar("T")

# "database is locked", deadlocks, lock timeouts, and version_id mismatches
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def begin_write() -> None:
    """
    Open the transaction holding the database write lock.

    SQLite otherwise upgrades a read lock at the first write, and two sellers
    doing that at once fail with "database is locked" instead of queueing on
    the busy timeout. Other backends lock rows with the conditional UPDATEs.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(unit_of_work: Callable[[], T], *, attempts: int = 3, backoff_base: float = 0.1) -> T:
    """
    Run `unit_of_work` as one transaction, replaying it when it loses a race.

    The session is rolled back after every failure, so the callable starts
    from a clean session on each attempt and must do its own commit. Business
    errors (validation, not found, insufficient stock) are not retried: the
    rollback happens and the exception reaches the caller unchanged.
    """
    attempt = 1
    while True:
        try:
            return unit_of_work()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                current_app.logger.error(
                    "Giving up after %d attempts: %s", attempts, exc.__class__.__name__,
                )
                raise
            current_app.logger.warning(
                "Write conflict on attempt %d/%d (%s), retrying",
                attempt, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
            attempt += 1
        except Exception:
            db.session.rollback()
            raise
