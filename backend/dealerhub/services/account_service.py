# Overview: Service-layer operations for the account directory; creation, scoping, status and deletion.

"""
Account Directory

Accounts form a forest through created_by_id: every account except root
Admins was created by another account. Scoping rules:

- An actor may create only the roles its own role allows
  (permissions.allowed_subordinate_roles).
- An actor manages (status changes, deletion) the accounts it created;
  Admins manage everyone.
- Listing is one level deep: the accounts an actor created directly.

New accounts always start with balance 0; balances only move through the
transfer engine. Deletion removes the profile and its identity but leaves
codes and the transfer sub-ledger behind.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AccountNotFound, IdentityError, PolicyViolation
from ..extensions import db
from ..models import Account, ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUSES
from ..permissions import Role, can_create, is_generation_authority, parse_role
from ..time_utils import utcnow
from ..validation import (
    ACCOUNT_CREATE_POLICY,
    ConflictError,
    ValidationError,
    enforce_rules_account,
    validate_payload,
)
from .concurrency import run_in_transaction
from .identity_service import PASSWORD_MIN_LENGTH, get_identity_provider

logger = logging.getLogger(__name__)

RECENT_ACCOUNTS_LIMIT = 5


def get_account(account_id: str) -> Account:
    account = db.session.get(Account, account_id)
    if not account:
        raise AccountNotFound(f"Account not found: {account_id}")
    return account


def can_manage(actor: Account, account: Account) -> bool:
    """Creator-or-Admin rule for status changes and deletion."""
    if actor.id == account.id:
        return False
    return is_generation_authority(actor.role) or account.created_by_id == actor.id


def can_view(actor: Account, account: Account) -> bool:
    return actor.id == account.id or can_manage(actor, account)


def _check_password(password) -> str:
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    return password


def _ensure_unique(email: str, mobile_number: str) -> None:
    if db.session.query(Account.id).filter_by(email=email).first():
        raise ConflictError("This email address is already in use by another account.")
    if db.session.query(Account.id).filter_by(mobile_number=mobile_number).first():
        raise ConflictError("This mobile number is already in use by another account.")


def _insert_account(identity_id: str, fields: dict, *, role: Role, created_by_id, balance: int) -> Account:
    provider = get_identity_provider()

    def _op() -> Account:
        account = Account(
            id=identity_id,
            role=role.value,
            created_by_id=created_by_id,
            balance=balance,
            status=ACCOUNT_STATUS_ACTIVE,
            created_at=utcnow(),
            **fields,
        )
        db.session.add(account)
        db.session.flush()
        return account

    try:
        return run_in_transaction(_op)
    except IntegrityError as exc:
        provider.delete_identity(identity_id)
        raise ConflictError("Email or mobile number already in use by another account.") from exc
    except Exception:
        # The identity was committed separately; take it back out.
        logger.exception("Account insert failed, removing identity %s", identity_id)
        provider.delete_identity(identity_id)
        raise


def create_account(actor_id: str, payload: dict, password: str) -> Account:
    """
    Create a subordinate account for actor_id.

    Args:
        actor_id: Account creating the new one (becomes created_by_id)
        payload: name, email, mobile_number, address, shop_name, dealer_code, role
        password: Initial password, handed to the identity provider only

    Returns:
        Account: The created account (balance 0, status active)

    Raises:
        AccountNotFound: actor does not exist
        PolicyViolation: actor's role may not create the requested role
        ValidationError: malformed fields
        ConflictError: email or mobile number already taken
        IdentityError: identity provider failure
    """
    actor = get_account(actor_id)

    fields = validate_payload(
        model=Account,
        payload=payload,
        policy=ACCOUNT_CREATE_POLICY,
        partial=False,
    )
    enforce_rules_account(fields)
    _check_password(password)

    role = parse_role(fields.pop("role"))
    if not can_create(actor.role, role):
        raise PolicyViolation(f"A {actor.role} account cannot create {role.value} accounts")

    _ensure_unique(fields["email"], fields["mobile_number"])

    identity_id = get_identity_provider().create_identity(fields["email"], password)
    account = _insert_account(identity_id, fields, role=role, created_by_id=actor.id, balance=0)

    logger.info("Account %s (%s) created by %s", account.id, account.role, actor.id)
    return account


def create_root_admin(payload: dict, password: str) -> Account:
    """
    Bootstrap an Admin with no creator (CLI only).

    Admin balance is display-only; it is seeded from ADMIN_DISPLAY_BALANCE
    and never consulted by transfers.
    """
    fields = validate_payload(
        model=Account,
        payload={**payload, "role": Role.ADMIN.value},
        policy=ACCOUNT_CREATE_POLICY,
        partial=False,
    )
    enforce_rules_account(fields)
    _check_password(password)
    fields.pop("role")

    _ensure_unique(fields["email"], fields["mobile_number"])

    identity_id = get_identity_provider().create_identity(fields["email"], password)
    return _insert_account(
        identity_id,
        fields,
        role=Role.ADMIN,
        created_by_id=None,
        balance=current_app.config.get("ADMIN_DISPLAY_BALANCE", 0),
    )


def list_subordinates(actor_id: str) -> list[Account]:
    """Accounts created directly by actor_id, newest first."""
    get_account(actor_id)
    return (
        db.session.query(Account)
        .filter(Account.created_by_id == actor_id)
        .order_by(Account.created_at.desc(), Account.id)
        .all()
    )


def directory_summary(actor_id: str) -> dict:
    """Dashboard counts over the direct subordinates of actor_id."""
    subordinates = list_subordinates(actor_id)
    retailers = [a for a in subordinates if a.role == Role.RETAILER.value]
    return {
        "dealers": len(subordinates) - len(retailers),
        "retailers": len(retailers),
        "recent": [a.to_dict() for a in subordinates[:RECENT_ACCOUNTS_LIMIT]],
    }


def set_account_status(actor_id: str, account_id: str, status: str) -> Account:
    if status not in ACCOUNT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ACCOUNT_STATUSES)}")

    def _op() -> Account:
        actor = get_account(actor_id)
        account = get_account(account_id)
        if not can_manage(actor, account):
            raise PolicyViolation("You can only change the status of accounts you manage")
        account.status = status
        db.session.flush()
        return account

    return run_in_transaction(_op)


def delete_account(actor_id: str, account_id: str) -> None:
    """
    Delete an account and its identity.

    Codes owned by the account and its transfer rows are left in place
    (orphaned); subordinates keep their dangling created_by_id.
    """
    actor = get_account(actor_id)
    account = get_account(account_id)
    if not can_manage(actor, account):
        raise PolicyViolation("You can only delete accounts you manage")
    orphaned_balance = account.balance

    try:
        get_identity_provider().delete_identity(account_id)
    except IdentityError:
        db.session.rollback()
        raise

    def _op() -> None:
        db.session.query(Account).filter_by(id=account_id).delete()

    run_in_transaction(_op)
    logger.info("Account %s deleted by %s (balance left orphaned: %s)", account_id, actor_id, orphaned_balance)
