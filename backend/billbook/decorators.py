# Overview: Request authentication decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service


def require_auth(f):
    """
    Require HTTP Basic credentials of an enabled user.

    Sets g.current_user to the authenticated User.
    Returns 401 if credentials are missing or wrong, or the account is disabled.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth = request.authorization
        if auth is None or auth.type != "basic":
            return jsonify({"error": "Authentication required"}), 401

        user = auth_service.authenticate(auth.username, auth.password)
        if user is None:
            return jsonify({"error": "Invalid credentials"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require an elevated role. Must be applied after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not auth_service.is_elevated(g.current_user.role):
            return jsonify({
                "error": "Admin role required",
                "kind": "PermissionDenied",
                "details": {"role": g.current_user.role},
            }), 403
        return f(*args, **kwargs)

    return decorated_function
