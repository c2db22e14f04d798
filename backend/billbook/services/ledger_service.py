# Overview: Transaction boundary for ledger-mutating operations.

from __future__ import annotations

from functools import wraps

from flask import current_app

from ..errors import LedgerError, OperationResult
from ..extensions import db
from .concurrency import ledger_write_lock, run_with_retry
"""
Ledger operation invariants (authoritative)

- Every public operation that mutates products, orders, purchases, mappings,
  users or company config is wrapped with @ledger_operation.
- The wrapped function raises LedgerError subclasses; it never commits.
- On success: one commit, then the sync reconciler is told local state is
  dirty, then OperationResult(ok=True, value=...) is returned.
- On LedgerError: rollback, OperationResult(ok=False, error=<kind>) is
  returned. Because every check runs before the first write and the rollback
  discards the flush, no partial mutation is ever observable.
- Any other exception rolls back and propagates.
- Internal helpers (suffix _locked) raise and are composed inside one
  operation; they are never wrapped themselves.
"""


def notify_mutation() -> None:
    """Tell the sync reconciler (if installed) that local state changed."""
    reconciler = current_app.extensions.get("sync")
    if reconciler is not None:
        reconciler.mark_dirty()


def ledger_operation(func):
    @wraps(func)
    def wrapper(*args, **kwargs) -> OperationResult:
        def _op():
            with ledger_write_lock:
                value = func(*args, **kwargs)
                db.session.commit()
                return value

        try:
            value = run_with_retry(_op)
        except LedgerError as exc:
            db.session.rollback()
            return OperationResult.failure(exc)
        except Exception:
            db.session.rollback()
            raise

        notify_mutation()
        return OperationResult.success(value)

    return wrapper
