# Overview: Flask API routes for the account directory; parses input and returns JSON responses.

"""
Account directory routes.

Visibility follows the hierarchy: a caller sees itself and the accounts it
manages (ones it created; Admins see everyone). Anything else answers 404,
the same as an id that does not exist.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_permission
from ..errors import CodeBalanceError, ERROR_STATUS
from ..extensions import db
from ..services import account_service, code_registry, ledger_service
from ..validation import ValidationError, ConflictError

accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


def _visible_account(account_id: str):
    """Account visible to the caller, or None."""
    try:
        account = account_service.get_account(account_id)
    except CodeBalanceError:
        return None
    if not account_service.can_view(g.current_account, account):
        return None
    return account


def _error_response(e: CodeBalanceError):
    return jsonify(e.to_dict()), ERROR_STATUS[e.kind]


@accounts_bp.get("")
@require_auth
@require_permission("VIEW_ACCOUNTS")
def list_accounts():
    """Accounts the caller created, newest first."""
    accounts = account_service.list_subordinates(g.actor.id)
    return jsonify({"accounts": [a.to_dict() for a in accounts], "count": len(accounts)})


@accounts_bp.get("/summary")
@require_auth
@require_permission("VIEW_ACCOUNTS")
def account_summary():
    """Dashboard counts: dealers, retailers and the most recent accounts."""
    summary = account_service.directory_summary(g.actor.id)
    summary["balance"] = g.current_account.balance
    return jsonify(summary)


@accounts_bp.post("")
@require_auth
@require_permission("CREATE_ACCOUNTS")
def create_account():
    """
    Create a subordinate account.

    Request body:
    - name, email, mobile_number, address, shop_name, dealer_code: str (required)
    - role: str (required) - must be a role the caller may create
    - password: str (required)
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    payload = dict(payload)
    password = payload.pop("password", None)

    try:
        account = account_service.create_account(g.actor.id, payload, password)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except CodeBalanceError as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create account")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"account": account.to_dict()}), 201


@accounts_bp.get("/<account_id>")
@require_auth
@require_permission("VIEW_ACCOUNTS")
def get_account(account_id: str):
    account = _visible_account(account_id)
    if not account:
        return jsonify({"error": "Account not found"}), 404
    return jsonify({"account": account.to_dict()})


@accounts_bp.get("/<account_id>/subordinates")
@require_auth
@require_permission("VIEW_ACCOUNTS")
def list_account_subordinates(account_id: str):
    account = _visible_account(account_id)
    if not account:
        return jsonify({"error": "Account not found"}), 404

    accounts = account_service.list_subordinates(account.id)
    return jsonify({"accounts": [a.to_dict() for a in accounts], "count": len(accounts)})


@accounts_bp.patch("/<account_id>/status")
@require_auth
@require_permission("MANAGE_ACCOUNT_STATUS")
def update_account_status(account_id: str):
    """
    Activate or deactivate an account.

    Request body:
    - status: "active" | "inactive"
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")

    try:
        account = account_service.set_account_status(g.actor.id, account_id, status)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CodeBalanceError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update status of account %s", account_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"account": account.to_dict()})


@accounts_bp.delete("/<account_id>")
@require_auth
@require_permission("DELETE_ACCOUNTS")
def delete_account(account_id: str):
    """Delete an account and its login. Its codes and transfer history stay behind."""
    try:
        account_service.delete_account(g.actor.id, account_id)
    except CodeBalanceError as e:
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete account %s", account_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"deleted": True, "id": account_id})


@accounts_bp.get("/<account_id>/transfers")
@require_auth
@require_permission("VIEW_TRANSFERS")
def list_account_transfers(account_id: str):
    """
    Transfer history of an account, newest first.

    Query params:
    - limit: int (optional)
    """
    account = _visible_account(account_id)
    if not account:
        return jsonify({"error": "Account not found"}), 404

    limit = request.args.get("limit", type=int)
    if limit is not None and limit <= 0:
        return jsonify({"error": "limit must be positive"}), 400

    transfers = ledger_service.list_transfers(account.id, limit=limit)
    return jsonify({"transfers": [t.to_dict() for t in transfers], "count": len(transfers)})


@accounts_bp.get("/<account_id>/codes")
@require_auth
@require_permission("VIEW_CODES")
def list_account_codes(account_id: str):
    """
    Codes currently owned by an account.

    Query params:
    - status: str (optional) - "available" or "used"
    """
    account = _visible_account(account_id)
    if not account:
        return jsonify({"error": "Account not found"}), 404

    codes = code_registry.list_codes(account.id, status=request.args.get("status"))
    return jsonify({"codes": [c.to_dict() for c in codes], "count": len(codes)})
