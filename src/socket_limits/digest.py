"""Digest construction for signed switchboard updates."""
from __future__ import annotations

from dataclasses import dataclass

from eth_abi import encode
from web3 import Web3

from .errors import EncodingError

EXECUTION_OVERHEAD_UPDATE = "EXECUTION_OVERHEAD_UPDATE"

# Field layout the switchboard hashes with abi.encode(...)
EXECUTION_OVERHEAD_UPDATE_TYPES = ["string", "uint256", "uint256", "uint256", "uint256"]

_UINT256_MAX = 2**256 - 1


def _check_uint256(name: str, value: object) -> int:
    # bool is an int subclass but never a valid field value here
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(
            f"{name} must be an unsigned integer, got {type(value).__name__}",
            details={"field": name},
        )
    if value < 0 or value > _UINT256_MAX:
        raise EncodingError(
            f"{name} out of uint256 range: {value}",
            details={"field": name},
        )
    return value


@dataclass(frozen=True)
class ExecutionOverheadUpdate:
    """A single execution overhead update, as signed by the updater."""
    nonce: int
    src_chain_id: int
    dst_chain_id: int
    execution_overhead: int
    operation: str = EXECUTION_OVERHEAD_UPDATE

    def __post_init__(self) -> None:
        if not isinstance(self.operation, str):
            raise EncodingError("operation tag must be a string")
        for name in ("nonce", "src_chain_id", "dst_chain_id", "execution_overhead"):
            # normalise IntEnum members to plain ints
            object.__setattr__(self, name, int(_check_uint256(name, getattr(self, name))))

    def encode(self) -> bytes:
        """ABI-encode (operation, nonce, src, dst, overhead)."""
        return encode(
            EXECUTION_OVERHEAD_UPDATE_TYPES,
            [
                self.operation,
                self.nonce,
                self.src_chain_id,
                self.dst_chain_id,
                self.execution_overhead,
            ],
        )

    def digest(self) -> bytes:
        """keccak256 of the encoded fields."""
        return bytes(Web3.keccak(self.encode()))


def execution_overhead_digest(
    nonce: int,
    src_chain_id: int,
    dst_chain_id: int,
    execution_overhead: int,
) -> bytes:
    """
    Compute the digest the switchboard recomputes to verify the signature.

    Must stay bit-exact with the contract: field order, widths and the
    encoding scheme are all part of the check.

    Raises:
        EncodingError: if any field is not a uint256
    """
    return ExecutionOverheadUpdate(
        nonce=nonce,
        src_chain_id=src_chain_id,
        dst_chain_id=dst_chain_id,
        execution_overhead=execution_overhead,
    ).digest()
