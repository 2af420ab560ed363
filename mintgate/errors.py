"""
Rejection taxonomy for reservation and mint operations.

Every error is a terminal, synchronous rejection. Nothing is retried
internally; the submitter decides whether to resubmit.
"""

from __future__ import annotations


class MintError(Exception):
    """Base class for all rejections raised by the core."""

    code = "mint_error"

    def __init__(self, message: str = "", *, token_id: int | None = None):
        self.token_id = token_id
        super().__init__(message or self.code)

    def to_dict(self) -> dict[str, object]:
        """Serialize for event payloads and CLI output."""
        return {
            "code": self.code,
            "token_id": self.token_id,
            "message": str(self),
        }


class AlreadyReserved(MintError):
    code = "already_reserved"


class NotReserved(MintError):
    code = "not_reserved"


class GloballyLocked(MintError):
    code = "globally_locked"


class UserLocked(MintError):
    code = "user_locked"


class ExceedsMax(MintError):
    code = "exceeds_max"


class ExceedsUserLimit(MintError):
    code = "exceeds_user_limit"


class InsufficientPayment(MintError):
    code = "insufficient_payment"


class Unauthorized(MintError):
    code = "unauthorized"


class Paused(MintError):
    code = "paused"


class ReentrantCall(MintError):
    code = "reentrant_call"


class LedgerFailure(MintError):
    """Balance issuance failed; any mutation already applied was reversed."""

    code = "ledger_failure"


class SettlementFailure(MintError):
    """Fee forwarding failed; the mint was unwound."""

    code = "settlement_failure"


class InvalidParameter(MintError, ValueError):
    code = "invalid_parameter"


class ConfigError(ValueError):
    """Raised when a collection file is structurally invalid."""


ERROR_CODES = frozenset({
    cls.code
    for cls in (
        AlreadyReserved,
        NotReserved,
        GloballyLocked,
        UserLocked,
        ExceedsMax,
        ExceedsUserLimit,
        InsufficientPayment,
        Unauthorized,
        Paused,
        ReentrantCall,
        LedgerFailure,
        SettlementFailure,
        InvalidParameter,
    )
})
