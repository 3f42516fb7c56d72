# Overview: Service-layer operations for the transfer ledger; append-only writes and reads.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import CodeTransfer, TRANSFER_DIRECTION_ASSIGNED, TRANSFER_DIRECTION_RETRIEVED
"""
Code Transfer Ledger Invariants (authoritative)

- Append-only: no updates or deletes of existing rows.
- Rows are written inside the same DB transaction as the balance and code
  ownership changes they record.
- One row per successful transfer, filed under the target account's sub-ledger.
- from/to names are snapshots; ids are the stable references.
"""

TRANSFER_DIRECTIONS = (TRANSFER_DIRECTION_ASSIGNED, TRANSFER_DIRECTION_RETRIEVED)


def append_transfer_record(
    *,
    account_id: str,
    from_account_id: str,
    to_account_id: str,
    from_name: str,
    to_name: str,
    quantity: int,
    direction: str,
    occurred_at: datetime,
) -> CodeTransfer:
    """
    Append one transfer record.

    - No domain logic here; the caller has already moved codes and balances.
    - Flushes so the id is assigned without committing.
    """
    if direction not in TRANSFER_DIRECTIONS:
        raise ValueError(f"Unknown transfer direction: {direction}")
    if quantity <= 0:
        raise ValueError("Transfer quantity must be positive")

    record = CodeTransfer(
        account_id=account_id,
        from_account_id=from_account_id,
        to_account_id=to_account_id,
        from_name=from_name,
        to_name=to_name,
        quantity=quantity,
        direction=direction,
        occurred_at=occurred_at,
    )
    db.session.add(record)
    db.session.flush()  # ensures record.id is assigned without committing
    return record


def list_transfers(account_id: str, limit: Optional[int] = None) -> list[CodeTransfer]:
    """An account's sub-ledger, newest first."""
    query = (
        db.session.query(CodeTransfer)
        .filter(CodeTransfer.account_id == account_id)
        .order_by(CodeTransfer.occurred_at.desc(), CodeTransfer.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()
