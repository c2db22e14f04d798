# Overview: Flask API routes for tax invoices; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..errors import LedgerError
from ..services import order_service
from ..decorators import require_auth
from .common import ledger_error_response, result_response

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders():
    """
    Invoices, most recent first.

    Query params:
    - search: str (optional) - customer name, serial number or email
    - limit: int (optional)
    """
    orders = order_service.list_orders(
        search=request.args.get("search"),
        limit=request.args.get("limit", type=int),
    )
    return {"items": [o.to_dict() for o in orders], "count": len(orders)}


@orders_bp.get("/<order_id>")
@require_auth
def get_order(order_id: str):
    try:
        return order_service.get_order(order_id).to_dict()
    except LedgerError as e:
        return ledger_error_response(e)


@orders_bp.post("")
@require_auth
def create_order():
    """
    Issue an invoice.

    Body:
    {
      "items": [{"product_id": "TEV-50", "quantity": 3}, ...],
      "customer": {"name", "email", "phone", "gstin"},
      "is_inter_state": false,
      "notes": ""
    }
    """
    payload = request.get_json(silent=True) or {}
    result = order_service.create_order(
        payload.get("items"),
        payload.get("customer"),
        is_inter_state=bool(payload.get("is_inter_state", False)),
        notes=payload.get("notes") or "",
        actor_user_id=g.current_user.id,
    )
    return result_response(result, status=201)


@orders_bp.delete("/<order_id>")
@require_auth
def delete_order(order_id: str):
    """Admin only; puts every line's quantity back into stock."""
    return result_response(order_service.delete_order(order_id, g.current_user.role))
