# Overview: Shared helpers turning service results into JSON responses.

from __future__ import annotations

from ..errors import LedgerError, OperationResult

# HTTP status per error kind
STATUS_BY_KIND = {
    "InvalidInput": 400,
    "InvalidOrderInput": 400,
    "InvalidPurchaseInput": 400,
    "UnknownProduct": 404,
    "OrderNotFound": 404,
    "PurchaseNotFound": 404,
    "PermissionDenied": 403,
    "InsufficientStock": 409,
    "UnresolvedSku": 409,
    "InvalidTransition": 409,
    "SyncUnavailable": 503,
    "SyncFailed": 503,
}


def error_response(kind: str, message: str | None, details: dict | None = None):
    body = {"error": message or kind, "kind": kind, "details": details or {}}
    return body, STATUS_BY_KIND.get(kind, 400)


def ledger_error_response(exc: LedgerError):
    return error_response(exc.kind, exc.message, exc.details)


def result_response(result: OperationResult, *, status: int = 200, serialize=None):
    """
    Success -> {"ok": true, "data": ...} with `status`;
    failure -> {"error", "kind", "details"} with the kind's status code.
    """
    if not result.ok:
        return error_response(result.error, result.message, result.details)
    value = result.value
    if serialize is not None:
        value = serialize(value)
    elif hasattr(value, "to_dict"):
        value = value.to_dict()
    return {"ok": True, "data": value}, status
