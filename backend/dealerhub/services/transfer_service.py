# backend/dealerhub/services/transfer_service.py
"""
Code balance transfer engine.

WHY: Move codes between accounts so that balances, code ownership and the
transfer ledger always change together or not at all.

DIRECTIONS:
- assign:   actor -> target. Admin actors generate new codes for the target
            (generation authority, actor balance untouched). Everyone else
            hands over codes they hold and their balance goes down.
- retrieve: target -> actor. The target must hold the codes. A non-Admin
            actor's balance goes up; an Admin's stays as it is.

TRANSACTION:
The whole operation is one run_in_transaction unit. Each attempt re-reads
both accounts (row-locked, bypassing the identity map) before any write,
so a retry after a version conflict validates against fresh balances.

RESULT:
transfer_codes never raises for business or storage failures; it returns a
TransferResult the caller can switch on via error_kind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    AccountNotFound,
    CodeBalanceError,
    ErrorKind,
    InsufficientBalance,
    InvalidQuantity,
    PolicyViolation,
    TransferFailed,
)
from ..extensions import db
from ..models import Account, CodeTransfer, TRANSFER_DIRECTION_ASSIGNED, TRANSFER_DIRECTION_RETRIEVED
from ..permissions import is_generation_authority
from ..time_utils import utcnow
from .code_registry import generate_codes, reassign_codes
from .concurrency import TransactionAbortedError, lock_for_update, run_in_transaction
from .ledger_service import append_transfer_record

logger = logging.getLogger(__name__)


# Request directions
DIRECTION_ASSIGN = "assign"
DIRECTION_RETRIEVE = "retrieve"
DIRECTIONS = (DIRECTION_ASSIGN, DIRECTION_RETRIEVE)


@dataclass(frozen=True)
class TransferRequest:
    actor_id: str
    target_id: str
    quantity: Any
    direction: str


@dataclass(frozen=True)
class TransferResult:
    success: bool
    transferred_quantity: int = 0
    transfer_id: Optional[int] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def succeeded(cls, record: CodeTransfer) -> "TransferResult":
        return cls(success=True, transferred_quantity=record.quantity, transfer_id=record.id)

    @classmethod
    def failed(cls, error: CodeBalanceError) -> "TransferResult":
        return cls(success=False, error_kind=error.kind, message=error.message)

    def to_dict(self) -> dict:
        if self.success:
            return {
                "success": True,
                "transferred_quantity": self.transferred_quantity,
                "transfer_id": self.transfer_id,
            }
        return {
            "success": False,
            "error_kind": self.error_kind.value,
            "message": self.message,
        }


def validate_quantity(value: Any, limit: Optional[int] = None) -> int:
    """
    Strict positive integer check.

    Accepts ints and plain decimal-digit strings; rejects bools, floats,
    scientific notation, anything <= 0 and anything above `limit`.
    """
    if isinstance(value, bool):
        raise InvalidQuantity("Quantity must be an integer")
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, str) and value.strip().isdecimal():
        try:
            quantity = int(value.strip())
        except ValueError:
            raise InvalidQuantity("Quantity must be an integer") from None
    else:
        raise InvalidQuantity("Quantity must be an integer")
    if quantity <= 0:
        raise InvalidQuantity("Quantity must be positive")
    if limit is not None and quantity > limit:
        raise InvalidQuantity(f"Quantity cannot exceed {limit}")
    return quantity


def _validate_request(request: TransferRequest) -> int:
    quantity = validate_quantity(request.quantity, current_app.config.get("MAX_TRANSFER_QUANTITY"))
    if request.direction not in DIRECTIONS:
        raise PolicyViolation(f"Unknown transfer direction: {request.direction!r}")
    if not request.actor_id or not request.target_id:
        raise AccountNotFound("Actor and target account ids are required")
    if request.actor_id == request.target_id:
        raise PolicyViolation("Cannot transfer codes to or from your own account")
    return quantity


def _load_accounts(actor_id: str, target_id: str) -> tuple[Account, Account]:
    query = (
        db.session.query(Account)
        .filter(Account.id.in_([actor_id, target_id]))
        .populate_existing()
    )
    by_id = {account.id: account for account in lock_for_update(query).all()}

    missing = [account_id for account_id in (actor_id, target_id) if account_id not in by_id]
    if missing:
        raise AccountNotFound(f"Account not found: {', '.join(missing)}")
    return by_id[actor_id], by_id[target_id]


def _assign(actor: Account, target: Account, quantity: int, now) -> CodeTransfer:
    if is_generation_authority(actor.role):
        generate_codes(quantity, owner_id=target.id, issued_by_id=actor.id, issued_at=now)
    else:
        if actor.balance < quantity:
            raise InsufficientBalance(
                f"Insufficient code balance to assign. Balance: {actor.balance}, requested: {quantity}"
            )
        reassign_codes(actor.id, target.id, quantity)
        actor.balance = actor.balance - quantity

    target.balance = target.balance + quantity

    return append_transfer_record(
        account_id=target.id,
        from_account_id=actor.id,
        to_account_id=target.id,
        from_name=actor.name,
        to_name=target.name,
        quantity=quantity,
        direction=TRANSFER_DIRECTION_ASSIGNED,
        occurred_at=now,
    )


def _retrieve(actor: Account, target: Account, quantity: int, now) -> CodeTransfer:
    if target.balance < quantity:
        raise InsufficientBalance(
            f"Target account has insufficient balance to retrieve. Balance: {target.balance}, requested: {quantity}"
        )

    reassign_codes(target.id, actor.id, quantity)

    if not is_generation_authority(actor.role):
        actor.balance = actor.balance + quantity
    target.balance = target.balance - quantity

    return append_transfer_record(
        account_id=target.id,
        from_account_id=target.id,
        to_account_id=actor.id,
        from_name=target.name,
        to_name=actor.name,
        quantity=quantity,
        direction=TRANSFER_DIRECTION_RETRIEVED,
        occurred_at=now,
    )


def transfer_codes(request: TransferRequest) -> TransferResult:
    """
    Assign or retrieve `quantity` codes between two accounts.

    Returns:
        TransferResult: success with the quantity moved, or the failure kind:
        AccountNotFound, InvalidQuantity, InsufficientBalance,
        InsufficientCodes, PolicyViolation, TransferFailed.
    """
    try:
        quantity = _validate_request(request)
    except CodeBalanceError as exc:
        return TransferResult.failed(exc)

    def _op() -> CodeTransfer:
        actor, target = _load_accounts(request.actor_id, request.target_id)
        now = utcnow()
        if request.direction == DIRECTION_ASSIGN:
            return _assign(actor, target, quantity, now)
        return _retrieve(actor, target, quantity, now)

    try:
        record = run_in_transaction(_op)
    except CodeBalanceError as exc:
        logger.info(
            "Transfer rejected (%s %d, actor=%s target=%s): %s",
            request.direction, quantity, request.actor_id, request.target_id, exc.message,
        )
        return TransferResult.failed(exc)
    except TransactionAbortedError as exc:
        logger.warning(
            "Transfer could not commit (%s %d, actor=%s target=%s): %s",
            request.direction, quantity, request.actor_id, request.target_id, exc,
        )
        return TransferResult.failed(
            TransferFailed("The transfer could not be completed, please try again.")
        )
    except SQLAlchemyError:
        logger.exception(
            "Transfer failed in storage (%s %d, actor=%s target=%s)",
            request.direction, quantity, request.actor_id, request.target_id,
        )
        return TransferResult.failed(
            TransferFailed("The transfer could not be completed, please try again.")
        )

    logger.info(
        "Transferred %d codes (%s) actor=%s target=%s transfer_id=%s",
        quantity, request.direction, request.actor_id, request.target_id, record.id,
    )
    return TransferResult.succeeded(record)
