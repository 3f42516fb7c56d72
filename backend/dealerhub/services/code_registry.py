# Overview: Service-layer operations for the code registry; generation and ownership moves.

"""
Code Registry

Owns every write to Code rows. Called only from inside the transfer
engine's transaction; nothing here commits.

TOKENS:
Each code id is scrambled by multiplying with an odd constant modulo 2**40
(a bijection on that range) and written as 8 Crockford base-32 characters.
Distinct ids therefore always yield distinct tokens, with no lookup and no
collision retry, and adjacent codes do not get adjacent-looking tokens.
"""

from __future__ import annotations

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientCodes, InvalidQuantity, TransferFailed
from ..extensions import db
from ..models import Account, Code, IdSequence, CODE_STATUS_AVAILABLE
from ..permissions import is_generation_authority
from ..time_utils import utcnow
from .concurrency import ConcurrencyConflict, lock_for_update


CODE_SEQUENCE_NAME = "codes"

TOKEN_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"  # Crockford base-32
TOKEN_WIDTH = 8
TOKEN_SPACE = len(TOKEN_ALPHABET) ** TOKEN_WIDTH  # 2**40
_TOKEN_MULTIPLIER = 0x9E3779B97  # odd, so invertible mod 2**40
_TOKEN_INVERSE = pow(_TOKEN_MULTIPLIER, -1, TOKEN_SPACE)
_TOKEN_ALIASES = str.maketrans({"I": "1", "L": "1", "O": "0"})


def encode_token(code_id: int) -> str:
    if not 0 < code_id < TOKEN_SPACE:
        raise ValueError(f"Code id {code_id} outside token range")
    n = (code_id * _TOKEN_MULTIPLIER) % TOKEN_SPACE
    chars = []
    for _ in range(TOKEN_WIDTH):
        n, digit = divmod(n, 32)
        chars.append(TOKEN_ALPHABET[digit])
    return "".join(reversed(chars))


def decode_token(token: str) -> int:
    """Inverse of encode_token. Accepts lowercase and the usual I/L/O misreads."""
    normalized = token.strip().upper().replace("-", "").translate(_TOKEN_ALIASES)
    if len(normalized) != TOKEN_WIDTH:
        raise ValueError(f"Token must be {TOKEN_WIDTH} characters")
    n = 0
    for ch in normalized:
        digit = TOKEN_ALPHABET.find(ch)
        if digit < 0:
            raise ValueError(f"Invalid token character: {ch!r}")
        n = n * 32 + digit
    return (n * _TOKEN_INVERSE) % TOKEN_SPACE


def allocate_ids(name: str, count: int) -> range:
    """
    Reserve `count` consecutive ids from a named sequence.

    Runs inside the caller's transaction: the UPDATE row-locks the sequence
    until commit, and a rollback gives the block back.
    """
    stmt = (
        update(IdSequence)
        .where(IdSequence.name == name)
        .values(next_value=IdSequence.next_value + count)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        current = (
            db.session.query(IdSequence.next_value)
            .filter_by(name=name)
            .scalar()
        )
        return range(current - count, current)

    seq = IdSequence(name=name, next_value=count + 1)
    db.session.add(seq)
    try:
        db.session.flush()
    except IntegrityError as exc:
        # Another transaction created the row first; retry from the top.
        raise ConcurrencyConflict(f"Sequence {name!r} created concurrently") from exc
    return range(1, count + 1)


def generate_codes(count: int, owner_id: str, issued_by_id: str, issued_at=None) -> list[Code]:
    """Create `count` new available codes owned by owner_id."""
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidQuantity("Code count must be a positive integer")

    issued_at = issued_at or utcnow()
    ids = allocate_ids(CODE_SEQUENCE_NAME, count)
    if ids.stop > TOKEN_SPACE:
        raise TransferFailed("Code id space exhausted")

    codes = [
        Code(
            id=code_id,
            token=encode_token(code_id),
            owner_id=owner_id,
            issued_by_id=issued_by_id,
            issued_at=issued_at,
            status=CODE_STATUS_AVAILABLE,
        )
        for code_id in ids
    ]
    db.session.add_all(codes)
    db.session.flush()
    return codes


def select_available(owner_id: str, count: int) -> list[Code]:
    """Lock up to `count` available codes of owner_id, oldest first."""
    query = (
        db.session.query(Code)
        .filter(Code.owner_id == owner_id, Code.status == CODE_STATUS_AVAILABLE)
        .order_by(Code.id)
        .limit(count)
    )
    return lock_for_update(query).all()


def reassign_codes(from_owner_id: str, to_owner_id: str, count: int) -> list[Code]:
    """
    Move exactly `count` available codes from one owner to another.

    Checks the physical code rows, independently of any balance column:
    balances can drift, this is the backstop.
    """
    codes = select_available(from_owner_id, count)
    if len(codes) < count:
        raise InsufficientCodes(
            f"Not enough available codes to transfer. Requested: {count}, found: {len(codes)}"
        )

    for code in codes:
        code.owner_id = to_owner_id
    db.session.flush()
    return codes


def count_available(owner_id: str) -> int:
    return (
        db.session.query(func.count(Code.id))
        .filter(Code.owner_id == owner_id, Code.status == CODE_STATUS_AVAILABLE)
        .scalar()
    )


def list_codes(owner_id: str, status: str | None = None) -> list[Code]:
    query = db.session.query(Code).filter(Code.owner_id == owner_id)
    if status:
        query = query.filter(Code.status == status)
    return query.order_by(Code.id).all()


def reconcile_balances() -> dict:
    """
    Compare every non-Admin balance with its available-code count.

    Returns:
        {
            "drifted": [{account_id, role, balance, available_codes}],
            "orphaned": [{owner_id, available_codes}],  # owners with no account
        }
    """
    counts = dict(
        db.session.query(Code.owner_id, func.count(Code.id))
        .filter(Code.status == CODE_STATUS_AVAILABLE)
        .group_by(Code.owner_id)
        .all()
    )

    drifted = []
    known_ids = set()
    for account in db.session.query(Account).order_by(Account.created_at, Account.id):
        known_ids.add(account.id)
        if is_generation_authority(account.role):
            continue
        available = counts.get(account.id, 0)
        if available != account.balance:
            drifted.append({
                "account_id": account.id,
                "role": account.role,
                "balance": account.balance,
                "available_codes": available,
            })

    orphaned = [
        {"owner_id": owner_id, "available_codes": n}
        for owner_id, n in sorted(counts.items())
        if owner_id not in known_ids
    ]
    return {"drifted": drifted, "orphaned": orphaned}
