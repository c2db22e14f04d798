# Overview: Flask API routes for company configuration.

from flask import Blueprint, request

from ..services import settings_service
from ..decorators import require_auth, require_admin
from ..extensions import db
from .common import result_response

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/company")
@require_auth
def get_company():
    config = settings_service.get_company_config()
    db.session.commit()
    return config.to_dict()


@settings_bp.patch("/company")
@require_auth
@require_admin
def update_company():
    """invoice_sequence is read-only; it advances only when invoices are issued."""
    payload = request.get_json(silent=True) or {}
    return result_response(settings_service.update_company_config(payload))


@settings_bp.put("/low-stock-threshold")
@require_auth
@require_admin
def set_low_stock_threshold():
    payload = request.get_json(silent=True) or {}
    return result_response(settings_service.set_low_stock_threshold(payload.get("value")))
