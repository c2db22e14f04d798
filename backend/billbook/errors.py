# Overview: Error kinds and the Result type returned by ledger-mutating operations.

"""
Ledger error model.

Services raise LedgerError subclasses internally. Public ledger operations
are wrapped by services.ledger_service.ledger_operation, which turns a raised
LedgerError into a failed OperationResult after rolling the transaction back.
Every check runs before the first write, so a failure never leaves a partial
stock mutation behind.

`kind` is the stable, externally meaningful name of the failure; `details`
names the offending product ids, SKUs or fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class LedgerError(Exception):
    kind = "LedgerError"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(LedgerError):
    """Malformed catalog, user or settings input."""
    kind = "InvalidInput"


class InvalidOrderInput(LedgerError):
    """Malformed cart, quantity or amount."""
    kind = "InvalidOrderInput"


class InvalidPurchaseInput(LedgerError):
    kind = "InvalidPurchaseInput"


class UnknownProduct(LedgerError):
    kind = "UnknownProduct"


class InsufficientStock(LedgerError):
    kind = "InsufficientStock"


class UnresolvedSku(LedgerError):
    """A purchase line is not linked to a known product; finalize is blocked."""
    kind = "UnresolvedSku"


class PermissionDenied(LedgerError):
    kind = "PermissionDenied"


class OrderNotFound(LedgerError):
    kind = "OrderNotFound"


class PurchaseNotFound(LedgerError):
    kind = "PurchaseNotFound"


class InvalidTransition(LedgerError):
    """Operation not allowed for the record's current status."""
    kind = "InvalidTransition"


class SyncUnavailable(LedgerError):
    """Cloud mode is off or no access token is linked."""
    kind = "SyncUnavailable"


class SyncFailed(LedgerError):
    kind = "SyncFailed"


@dataclass
class OperationResult:
    ok: bool
    value: Any = None
    error: str | None = None
    message: str | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def success(cls, value: Any = None, details: dict | None = None) -> "OperationResult":
        return cls(ok=True, value=value, details=details or {})

    @classmethod
    def failure(cls, exc: LedgerError) -> "OperationResult":
        return cls(ok=False, error=exc.kind, message=exc.message, details=exc.details)

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "error": self.error,
            "message": self.message,
            "details": self.details,
        }
