# backend/billbook/routes/system.py
"""
System health endpoint.

Checks the database, the admin account and the cloud sync link, so a
workstation can tell at a glance whether it is working locally or in step
with the shared document.
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Order, Product, PurchaseOrder, User, ROLE_ADMIN
from ..services.settings_service import get_sync_session
from ..time_utils import utc_stamp

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "orders": db.session.query(Order).count(),
            "purchases": db.session.query(PurchaseOrder).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_auth_health() -> dict:
    """Degraded when no enabled admin exists (nobody can delete or revert)."""
    try:
        admins = db.session.query(User).filter_by(role=ROLE_ADMIN, enabled=True).count()
    except Exception:
        current_app.logger.exception("Auth health check failed")
        return {"status": "unhealthy", "error": "Auth service error"}

    if admins == 0:
        return {"status": "degraded", "warning": "No enabled admin user"}
    return {"status": "healthy", "details": {"admins": admins}}


def check_sync_health() -> dict:
    """
    Sync problems never make the system unhealthy: local state stays
    authoritative. A failed last exchange is reported as degraded.
    """
    try:
        session = get_sync_session()
        db.session.commit()
    except Exception:
        current_app.logger.exception("Sync health check failed")
        return {"status": "unhealthy", "error": "Sync state unavailable"}

    data = session.to_dict()
    if data["status"] == "not_synced":
        return {"status": "degraded", "warning": data["last_error"], "details": data}
    return {"status": "healthy", "details": data}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": check_database_health(),
        "auth": check_auth_health(),
        "sync": check_sync_health(),
    }

    statuses = [check["status"] for check in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utc_stamp(),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status
