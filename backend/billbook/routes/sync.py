# Overview: Flask API routes for cloud link, manual pull and sync status.

"""
Cloud sync routes.

Pushes normally happen on their own (debounced after every change); these
endpoints link or unlink the account, force a push, and pull the shared
document, which replaces local data.
"""
from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_admin
from .common import result_response

sync_bp = Blueprint("sync", __name__, url_prefix="/api/sync")


def _reconciler():
    return current_app.extensions["sync"]


@sync_bp.get("/status")
@require_auth
def status():
    return _reconciler().status()


@sync_bp.post("/link")
@require_auth
@require_admin
def link():
    """Body: {"access_token": "..."}; enables cloud mode and pulls shared data."""
    payload = request.get_json(silent=True) or {}
    return result_response(_reconciler().link(payload.get("access_token")))


@sync_bp.post("/unlink")
@require_auth
@require_admin
def unlink():
    return result_response(_reconciler().unlink())


@sync_bp.put("/mode")
@require_auth
@require_admin
def set_mode():
    payload = request.get_json(silent=True) or {}
    return result_response(_reconciler().set_cloud_enabled(bool(payload.get("cloud_enabled"))))


@sync_bp.post("/push")
@require_auth
def push():
    reconciler = _reconciler()
    reconciler.cancel_pending()
    return result_response(reconciler.push_now())


@sync_bp.post("/pull")
@require_auth
def pull():
    """Replace local data with the shared document."""
    return result_response(_reconciler().pull())
