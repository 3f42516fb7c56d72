# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .permissions import role_has_permission, validate_permission_code
from .services import identity_service


def _is_authenticated() -> bool:
    return hasattr(g, 'actor') and hasattr(g, 'current_account')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


def require_auth(f):
    """
    Require a valid bearer token for an active account.

    Sets the following Flask g attributes:
    - g.actor: ActorContext (id, role, account)
    - g.current_account: the caller's Account row

    Returns 401 if the header is missing, the token is invalid or expired,
    or the account was deactivated or deleted.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        actor = identity_service.resolve_current_actor(token)
        if not actor:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.actor = actor
        g.current_account = actor.account

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require the caller's role to hold a permission (static role grants)."""
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not role_has_permission(g.actor.role, permission_code):
                current_app.logger.info(
                    "Permission %s denied for account %s (%s) on %s",
                    permission_code, g.actor.id, g.actor.role.value, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
