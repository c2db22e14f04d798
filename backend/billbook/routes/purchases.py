# Overview: Flask API routes for purchase intake, the review queue and reverts.

from flask import Blueprint, request, g

from ..errors import LedgerError
from ..models import PurchaseStatus
from ..services import purchase_service
from ..decorators import require_auth
from .common import error_response, ledger_error_response, result_response

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@require_auth
def list_purchases():
    """
    The purchase ledger.

    Query params:
    - status: Logged | Confirmed (optional, default Confirmed)
    """
    status = request.args.get("status")
    if status:
        try:
            status = PurchaseStatus(status)
        except ValueError:
            return error_response("InvalidPurchaseInput", f"Unknown status: {status}", {"field": "status"})
    purchases = purchase_service.list_purchases(status or None)
    return {"items": [po.to_dict() for po in purchases], "count": len(purchases)}


@purchases_bp.get("/pending")
@require_auth
def list_pending():
    pending = purchase_service.list_pending()
    return {"items": [po.to_dict() for po in pending], "count": len(pending)}


@purchases_bp.get("/<po_id>")
@require_auth
def get_purchase(po_id: str):
    try:
        return purchase_service.get_purchase(po_id).to_dict()
    except LedgerError as e:
        return ledger_error_response(e)


@purchases_bp.post("")
@require_auth
def intake():
    payload = request.get_json(silent=True) or {}
    return result_response(
        purchase_service.intake(payload, actor_user_id=g.current_user.id),
        status=201,
    )


@purchases_bp.post("/<po_id>/finalize")
@require_auth
def finalize(po_id: str):
    return result_response(purchase_service.finalize_review(po_id))


@purchases_bp.patch("/<po_id>/items/<item_id>")
@require_auth
def update_pending_item(po_id: str, item_id: str):
    payload = request.get_json(silent=True) or {}
    return result_response(purchase_service.update_pending_item(po_id, item_id, payload))


@purchases_bp.delete("/<po_id>/items/<item_id>")
@require_auth
def reject_pending_item(po_id: str, item_id: str):
    return result_response(purchase_service.reject_pending_item(po_id, item_id))


@purchases_bp.post("/<po_id>/reject")
@require_auth
def reject_pending(po_id: str):
    return result_response(purchase_service.reject_pending(po_id))


@purchases_bp.post("/<po_id>/revert")
@require_auth
def revert(po_id: str):
    """Admin only. Response lists any shortfall where stock was already sold."""
    return result_response(purchase_service.revert(po_id, g.current_user.role))
