# Overview: Typed failure taxonomy for code-balance operations.

"""
Every failure a caller can switch on carries an ErrorKind.

Services raise the subclasses below; the transfer engine converts them into
a TransferResult and routes map them to HTTP status codes via ERROR_STATUS.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    INVALID_QUANTITY = "InvalidQuantity"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_CODES = "InsufficientCodes"
    TRANSFER_FAILED = "TransferFailed"
    IDENTITY_ERROR = "IdentityError"
    POLICY_VIOLATION = "PolicyViolation"


class CodeBalanceError(Exception):
    """Base class for failures that surface to the caller verbatim."""
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error_kind": self.kind.value, "message": self.message}


class AccountNotFound(CodeBalanceError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND


class InvalidQuantity(CodeBalanceError):
    kind = ErrorKind.INVALID_QUANTITY


class InsufficientBalance(CodeBalanceError):
    kind = ErrorKind.INSUFFICIENT_BALANCE


class InsufficientCodes(CodeBalanceError):
    kind = ErrorKind.INSUFFICIENT_CODES


class TransferFailed(CodeBalanceError):
    kind = ErrorKind.TRANSFER_FAILED


class IdentityError(CodeBalanceError):
    kind = ErrorKind.IDENTITY_ERROR


class PolicyViolation(CodeBalanceError):
    kind = ErrorKind.POLICY_VIOLATION


# HTTP status used by the API layer for each kind
ERROR_STATUS = {
    ErrorKind.ACCOUNT_NOT_FOUND: 404,
    ErrorKind.INVALID_QUANTITY: 400,
    ErrorKind.INSUFFICIENT_BALANCE: 409,
    ErrorKind.INSUFFICIENT_CODES: 409,
    ErrorKind.TRANSFER_FAILED: 503,
    ErrorKind.IDENTITY_ERROR: 502,
    ErrorKind.POLICY_VIOLATION: 403,
}
