from .accounts import Account, ACCOUNT_STATUS_ACTIVE, ACCOUNT_STATUS_INACTIVE, ACCOUNT_STATUSES
from .codes import (
    Code,
    CodeTransfer,
    IdSequence,
    CODE_STATUS_AVAILABLE,
    CODE_STATUS_USED,
    TRANSFER_DIRECTION_ASSIGNED,
    TRANSFER_DIRECTION_RETRIEVED,
)
from .auth import Identity, SessionToken

__all__ = [
    'Account', 'ACCOUNT_STATUS_ACTIVE', 'ACCOUNT_STATUS_INACTIVE', 'ACCOUNT_STATUSES',
    'Code', 'CodeTransfer', 'IdSequence',
    'CODE_STATUS_AVAILABLE', 'CODE_STATUS_USED',
    'TRANSFER_DIRECTION_ASSIGNED', 'TRANSFER_DIRECTION_RETRIEVED',
    'Identity', 'SessionToken',
]
