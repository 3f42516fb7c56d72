# Overview: Flask API routes for code transfers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ERROR_STATUS, PolicyViolation
from ..extensions import db
from ..models import Account
from ..permissions import role_has_permission
from ..services import account_service
from ..services.transfer_service import (
    DIRECTION_ASSIGN,
    DIRECTION_RETRIEVE,
    TransferRequest,
    TransferResult,
    transfer_codes,
)

transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")

DIRECTION_PERMISSIONS = {
    DIRECTION_ASSIGN: "ASSIGN_CODES",
    DIRECTION_RETRIEVE: "RETRIEVE_CODES",
}


def _result_response(result: TransferResult):
    if result.success:
        return jsonify(result.to_dict()), 200
    return jsonify(result.to_dict()), ERROR_STATUS[result.error_kind]


@transfers_bp.post("")
@require_auth
def create_transfer():
    """
    Assign codes to, or retrieve codes from, an account the caller manages.

    Request body:
    - target_id: str (required)
    - quantity: int (required, > 0)
    - direction: "assign" | "retrieve" (required)

    Returns:
    - 200 {"success": true, "transferred_quantity": n, "transfer_id": id}
    - 4xx/503 {"success": false, "error_kind": ..., "message": ...}
    """
    data = request.get_json(silent=True) or {}
    direction = data.get("direction")
    target_id = data.get("target_id")

    # The permission depends on the direction, so it is checked here
    # rather than with @require_permission.
    required = DIRECTION_PERMISSIONS.get(direction)
    if required and not role_has_permission(g.actor.role, required):
        return _result_response(TransferResult.failed(
            PolicyViolation(f"Your role may not {direction} codes")
        ))

    target = db.session.get(Account, target_id) if isinstance(target_id, str) else None
    if target and target.id != g.actor.id and not account_service.can_manage(g.current_account, target):
        return _result_response(TransferResult.failed(
            PolicyViolation("You can only transfer codes with accounts you manage")
        ))

    transfer_request = TransferRequest(
        actor_id=g.actor.id,
        target_id=target_id if isinstance(target_id, str) else None,
        quantity=data.get("quantity"),
        direction=direction,
    )

    try:
        result = transfer_codes(transfer_request)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Unexpected error during transfer")
        return jsonify({"error": "Internal server error"}), 500

    return _result_response(result)
