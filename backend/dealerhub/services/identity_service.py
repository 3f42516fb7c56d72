# Overview: Service-layer operations for identities; login, bearer sessions and the provider seam.

"""
Identity Provider

The rest of the application only needs four things from whoever holds the
logins: create an identity, delete it, check a password, and turn a bearer
token back into an identity id. IdentityProvider is that seam; the
provider registered on the app (app.extensions["identity_provider"]) is the
one every service uses, so tests or deployments can plug in another.

DatabaseIdentityProvider is the built-in implementation:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Cryptographically secure random tokens (32 bytes), stored as SHA-256
- 24-hour absolute timeout, 2-hour idle timeout
- Its writes commit on their own, like any external identity store would;
  callers compensate (delete_identity) if their own follow-up fails.
"""

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta

import bcrypt
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import IdentityError, PolicyViolation
from ..extensions import db
from ..models import Account, Identity, SessionToken
from ..permissions import Role, parse_role
from dealerhub.time_utils import utcnow

logger = logging.getLogger(__name__)


# Configuration constants
SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout
PASSWORD_MIN_LENGTH = 6

EXTENSION_KEY = "identity_provider"


@dataclass
class ActorContext:
    """The authenticated caller, as resolved from a bearer token."""
    id: str
    role: Role
    account: Account


class IdentityProvider:
    """Interface every identity backend implements. Failures raise IdentityError."""

    def create_identity(self, email: str, password: str) -> str:
        raise NotImplementedError

    def delete_identity(self, identity_id: str) -> None:
        raise NotImplementedError

    def authenticate(self, email: str, password: str) -> str | None:
        raise NotImplementedError

    def issue_token(self, identity_id: str) -> str:
        raise NotImplementedError

    def resolve_token(self, token: str) -> str | None:
        raise NotImplementedError

    def revoke_token(self, token: str) -> bool:
        raise NotImplementedError


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def hash_password(password: str, rounds: int = 12) -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise IdentityError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


class DatabaseIdentityProvider(IdentityProvider):
    """Identities and sessions kept in this application's own database."""

    def __init__(self, rounds: int | None = None):
        self.rounds = rounds

    def _rounds(self) -> int:
        if self.rounds is not None:
            return self.rounds
        return current_app.config.get("BCRYPT_ROUNDS", 12)

    def create_identity(self, email: str, password: str) -> str:
        email = email.strip().lower()
        existing = db.session.query(Identity).filter_by(email=email).first()
        if existing:
            raise IdentityError("This email address is already in use by another account.")

        identity = Identity(
            id=uuid.uuid4().hex,
            email=email,
            password_hash=hash_password(password, rounds=self._rounds()),
        )
        try:
            db.session.add(identity)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise IdentityError(f"Could not create identity: {exc}") from exc
        return identity.id

    def delete_identity(self, identity_id: str) -> None:
        identity = db.session.get(Identity, identity_id)
        if not identity:
            logger.warning("Identity %s already removed", identity_id)
            return
        try:
            db.session.query(SessionToken).filter_by(identity_id=identity_id).delete()
            db.session.delete(identity)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise IdentityError(f"Could not delete identity: {exc}") from exc

    def authenticate(self, email: str, password: str) -> str | None:
        identity = db.session.query(Identity).filter_by(email=email.strip().lower()).first()
        if not identity or not verify_password(password, identity.password_hash):
            return None
        identity.last_login_at = utcnow()
        db.session.commit()
        return identity.id

    def issue_token(self, identity_id: str) -> str:
        plaintext_token = generate_token()
        now = utcnow()
        session = SessionToken(
            identity_id=identity_id,
            token_hash=hash_token(plaintext_token),
            created_at=now,
            last_used_at=now,
            expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
            is_revoked=False,
        )
        db.session.add(session)
        db.session.commit()
        return plaintext_token

    def resolve_token(self, token: str) -> str | None:
        """
        Return the identity id for a live token, or None.

        Idle sessions are revoked on sight; last_used_at is refreshed otherwise.
        """
        now = utcnow()
        session = db.session.query(SessionToken).filter_by(
            token_hash=hash_token(token),
            is_revoked=False,
        ).first()
        if not session:
            return None

        if session.expires_at < now:
            return None

        if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
            session.is_revoked = True
            session.revoked_at = now
            session.revoked_reason = "Idle timeout"
            db.session.commit()
            return None

        session.last_used_at = now
        db.session.commit()
        return session.identity_id

    def revoke_token(self, token: str) -> bool:
        session = db.session.query(SessionToken).filter_by(
            token_hash=hash_token(token),
            is_revoked=False,
        ).first()
        if not session:
            return False

        session.is_revoked = True
        session.revoked_at = utcnow()
        session.revoked_reason = "User logout"
        db.session.commit()
        return True


def init_identity_provider(app, provider: IdentityProvider | None = None) -> IdentityProvider:
    provider = provider or DatabaseIdentityProvider()
    app.extensions[EXTENSION_KEY] = provider
    return provider


def get_identity_provider() -> IdentityProvider:
    return current_app.extensions[EXTENSION_KEY]


def resolve_current_actor(token: str) -> ActorContext | None:
    """
    Resolve a bearer token to the calling account.

    Returns None for unknown/expired tokens, tokens whose account no longer
    exists, and inactive accounts.
    """
    identity_id = get_identity_provider().resolve_token(token)
    if not identity_id:
        return None

    account = db.session.get(Account, identity_id)
    if not account or not account.is_active:
        return None

    return ActorContext(id=account.id, role=parse_role(account.role), account=account)


def login(mobile_number: str, password: str) -> tuple[Account, str] | None:
    """
    Log in with mobile number + password.

    Returns (account, token), or None for bad credentials.

    Raises:
        PolicyViolation: credentials are right but the account is inactive
    """
    account = db.session.query(Account).filter_by(mobile_number=mobile_number.strip()).first()
    if not account:
        return None

    provider = get_identity_provider()
    identity_id = provider.authenticate(account.email, password)
    if identity_id != account.id:
        return None

    if not account.is_active:
        raise PolicyViolation("This account is inactive.")

    return account, provider.issue_token(account.id)


def logout(token: str) -> bool:
    return get_identity_provider().revoke_token(token)
