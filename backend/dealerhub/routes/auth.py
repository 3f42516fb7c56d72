# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login is by mobile number + password. The identity provider checks the
password and issues an opaque bearer token; protected routes expect it in
the Authorization header.

Self-registration does not exist: accounts are created by their parent
account (POST /api/accounts) or, for root Admins, by the CLI.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, bearer_token
from ..errors import CodeBalanceError, ERROR_STATUS
from ..extensions import db
from ..permissions import ROLE_PERMISSIONS, get_permission_definition, parse_role
from ..services import identity_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _permissions_for(account) -> list[str]:
    return sorted(ROLE_PERMISSIONS[parse_role(account.role)])


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Returns the account and token on success. 401 for bad credentials,
    403 if the account has been deactivated.
    """
    data = request.get_json(silent=True) or {}
    mobile_number = data.get("mobile_number")
    password = data.get("password")

    if not isinstance(mobile_number, str) or not isinstance(password, str) or not mobile_number or not password:
        return jsonify({"error": "mobile_number and password required"}), 400

    try:
        result = identity_service.login(mobile_number, password)
    except CodeBalanceError as e:
        return jsonify(e.to_dict()), ERROR_STATUS[e.kind]
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login account")
        return jsonify({"error": "Internal server error"}), 500

    if not result:
        current_app.logger.info("Failed login for mobile number %s", mobile_number)
        return jsonify({"error": "Invalid credentials"}), 401

    account, token = result
    return jsonify({
        "account": account.to_dict(),
        "permissions": _permissions_for(account),
        "token": token,
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """Revoke the bearer token. Unknown tokens are reported, not an error."""
    token = bearer_token()
    if not token:
        return jsonify({"error": "Authentication required"}), 401

    revoked = identity_service.logout(token)
    return jsonify({"revoked": revoked, "message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current account, its permission codes and their catalogue entries."""
    codes = _permissions_for(g.current_account)
    return jsonify({
        "account": g.current_account.to_dict(),
        "permissions": codes,
        "permission_details": [get_permission_definition(code) for code in codes],
    })
