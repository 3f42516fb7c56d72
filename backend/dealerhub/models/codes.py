from __future__ import annotations

from ..extensions import db
from dealerhub.time_utils import to_utc_z


CODE_STATUS_AVAILABLE = "available"
CODE_STATUS_USED = "used"

TRANSFER_DIRECTION_ASSIGNED = "assigned"
TRANSFER_DIRECTION_RETRIEVED = "retrieved"


class Code(db.Model):
    """
    A single activation code.

    INVARIANTS:
    - Exactly one owner at any time (owner_id is never null).
    - token is derived from id (see code_registry.encode_token), so two codes
      can never share a token.
    - issued_by_id / issued_at never change after insert.
    - Codes are never deleted; available -> used happens outside this service.
    """
    __tablename__ = "codes"
    __table_args__ = (
        db.Index("ix_codes_owner_status", "owner_id", "status"),
    )

    # Allocated from IdSequence("codes") before insert so the token can be derived up front
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    token = db.Column(db.String(16), nullable=False, unique=True, index=True)

    owner_id = db.Column(db.String(32), nullable=False)
    issued_by_id = db.Column(db.String(32), nullable=False, index=True)
    issued_at = db.Column(db.DateTime(timezone=True), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=CODE_STATUS_AVAILABLE)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Code id={self.id} token={self.token!r} owner={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "token": self.token,
            "owner_id": self.owner_id,
            "issued_by_id": self.issued_by_id,
            "issued_at": to_utc_z(self.issued_at),
            "status": self.status,
        }


class CodeTransfer(db.Model):
    """
    Append-only transfer record.

    Each row belongs to the sub-ledger of account_id (the target of the
    assign/retrieve call). from/to names are snapshots taken at transfer
    time so the history still reads correctly after renames or deletions.
    """
    __tablename__ = "code_transfers"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_code_transfers_quantity_positive"),
        db.Index("ix_code_transfers_account_occurred", "account_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.String(32), nullable=False)

    from_account_id = db.Column(db.String(32), nullable=False, index=True)
    to_account_id = db.Column(db.String(32), nullable=False, index=True)
    from_name = db.Column(db.String(120), nullable=False)
    to_name = db.Column(db.String(120), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    direction = db.Column(db.String(16), nullable=False)  # assigned | retrieved

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "from_account_id": self.from_account_id,
            "to_account_id": self.to_account_id,
            "from_name": self.from_name,
            "to_name": self.to_name,
            "quantity": self.quantity,
            "direction": self.direction,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class IdSequence(db.Model):
    """
    Named counters for ids that must be known before INSERT.

    WHY: code tokens are derived from code ids, so a block of ids is reserved
    (row-locked UPDATE) inside the transferring transaction first.
    """
    __tablename__ = "id_sequences"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_id_sequences_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False)
    next_value = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "next_value": self.next_value,
            "updated_at": to_utc_z(self.updated_at),
        }
