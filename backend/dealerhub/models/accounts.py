from __future__ import annotations

from ..extensions import db
from dealerhub.time_utils import to_utc_z


ACCOUNT_STATUS_ACTIVE = "active"
ACCOUNT_STATUS_INACTIVE = "inactive"
ACCOUNT_STATUSES = (ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_INACTIVE)


class Account(db.Model):
    """
    Dealer/retailer profile.

    id is the identity id issued by the identity provider, so the profile and
    the login share one key.

    HIERARCHY: created_by_id points at the account that created this one.
    It is a lookup edge only (no foreign key): deleting a manager leaves the
    pointer dangling rather than cascading.

    BALANCE: count of available codes owned by this account. Only the transfer
    engine writes it. For Admin accounts it is display-only.

    WHY version_id: concurrent transfers touching the same account fail with
    StaleDataError on flush instead of losing an update, and get retried.
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
        db.Index("ix_accounts_created_by_role", "created_by_id", "role"),
    )

    id = db.Column(db.String(32), primary_key=True)

    role = db.Column(db.String(16), nullable=False, index=True)
    created_by_id = db.Column(db.String(32), nullable=True, index=True)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    mobile_number = db.Column(db.String(32), nullable=False, unique=True, index=True)
    address = db.Column(db.String(255), nullable=False)
    shop_name = db.Column(db.String(120), nullable=False)
    dealer_code = db.Column(db.String(64), nullable=False)
    locker_id = db.Column(db.String(64), nullable=True)

    balance = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=ACCOUNT_STATUS_ACTIVE)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == ACCOUNT_STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<Account id={self.id} role={self.role} balance={self.balance}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "created_by_id": self.created_by_id,
            "name": self.name,
            "email": self.email,
            "mobile_number": self.mobile_number,
            "address": self.address,
            "shop_name": self.shop_name,
            "dealer_code": self.dealer_code,
            "locker_id": self.locker_id,
            "balance": self.balance,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
