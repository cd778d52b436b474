"""Error taxonomy for limit updates."""
from __future__ import annotations

from typing import Any, Optional


class UpdateError(Exception):
    """Base exception for socket-limits operations."""

    default_code = "UPDATE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(UpdateError):
    """No signer, RPC endpoint or chain entry is configured for a request."""

    default_code = "CONFIGURATION_ERROR"


class EncodingError(UpdateError):
    """Malformed input to digest or calldata construction."""

    default_code = "ENCODING_ERROR"


class SubmissionError(UpdateError):
    """The network rejected or reverted the contract call."""

    default_code = "SUBMISSION_ERROR"

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        revert_reason: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if tx_hash:
            details["tx_hash"] = tx_hash
        if revert_reason:
            details["revert_reason"] = revert_reason
        super().__init__(message, details=details)
        self.tx_hash = tx_hash
        self.revert_reason = revert_reason


class ConfirmationTimeoutError(UpdateError):
    """Transaction inclusion did not resolve within the wait timeout."""

    default_code = "CONFIRMATION_TIMEOUT"

    def __init__(self, tx_hash: str, timeout_seconds: float):
        super().__init__(
            f"Transaction {tx_hash} not included after {timeout_seconds}s",
            details={"tx_hash": tx_hash, "timeout_seconds": timeout_seconds},
        )
        self.tx_hash = tx_hash
        self.timeout_seconds = timeout_seconds


class ConfirmationCheckError(UpdateError):
    """The confirmation collaborator itself failed."""

    default_code = "CONFIRMATION_CHECK_ERROR"


class RPCError(Exception):
    """JSON-RPC transport or node error."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(message)
