# Overview: Flask API routes for GST, margin and dashboard reports.

from flask import Blueprint, current_app, request

from ..errors import LedgerError
from ..services import report_service
from ..decorators import require_auth, require_admin
from ..time_utils import parse_iso_datetime
from .common import error_response, ledger_error_response

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/gst")
@require_auth
def gst():
    """
    Query params:
    - year: int (required)
    - month: int 1-12 (optional)
    - quarter: int 1-4 (optional)
    """
    year = request.args.get("year", type=int)
    if year is None:
        return error_response("InvalidInput", "year is required", {"field": "year"})
    try:
        return report_service.gst_summary(
            year,
            month=request.args.get("month", type=int),
            quarter=request.args.get("quarter", type=int),
        )
    except LedgerError as e:
        return ledger_error_response(e)


@reports_bp.get("/margin")
@require_auth
@require_admin
def margin():
    """
    Query params:
    - start, end: ISO-8601 (optional, business clock when naive)
    """
    tz = current_app.config["BUSINESS_TIMEZONE"]
    try:
        start = parse_iso_datetime(request.args.get("start"), tz)
        end = parse_iso_datetime(request.args.get("end"), tz)
    except ValueError:
        return error_response("InvalidInput", "start/end must be ISO-8601", {"fields": ["start", "end"]})
    return report_service.sales_margin(start, end)


@reports_bp.get("/dashboard")
@require_auth
def dashboard():
    return report_service.dashboard()
