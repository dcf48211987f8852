# Overview: Transaction helpers shared by the ledger and sale lifecycle services.

from __future__ import annotations

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() covers it there.
    """
    return query.with_for_update()


def begin_write() -> None:
    """
    Open the write transaction before the first read of a read-validate-write.

    On SQLite this takes the database write lock up front (BEGIN IMMEDIATE), so
    two writers cannot both read the same pre-decrement quantity. Other
    dialects rely on lock_for_update().
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Each attempt starts from a rolled-back
    session, so validation always runs against freshly read state.
    Storage failures that survive the retries surface as StorageError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StorageError(
                    "Storage temporarily unavailable",
                    details={"reason": exc.__class__.__name__},
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(
                "Storage operation failed",
                details={"reason": exc.__class__.__name__},
            ) from exc
        except Exception:
            db.session.rollback()
            raise
