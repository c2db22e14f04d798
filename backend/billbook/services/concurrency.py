# Overview: Single-writer lock, row locking and retry helpers for ledger writes.

from __future__ import annotations

import threading
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

# Held for the whole of every ledger operation, and while the sync snapshot is
# built. Two batches touching the same products can never interleave, and a
# push never serializes a half-applied operation.
ledger_write_lock = threading.RLock()


def lock_for_update(query):
    """
    Apply row-level locking for stock reads that precede a write.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; ledger_write_lock covers it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation, retrying on concurrency-related failures.

    Retries on OperationalError (database locked) and StaleDataError
    (Product.version_id conflict). The whole operation is re-run, so func
    must re-read everything it depends on.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
