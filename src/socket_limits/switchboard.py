"""
Switchboard contract calls.

Reads the per-signer update nonce and submits signed execution overhead
updates, then waits for the transaction to be included.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError as AbiEncodingError
from web3 import Web3

from .errors import ConfirmationTimeoutError, EncodingError, RPCError, SubmissionError
from .signer import DigestSigner

NEXT_NONCE_SIGNATURE = "nextNonce(address)"
SET_EXECUTION_OVERHEAD_SIGNATURE = "setExecutionOverhead(uint256,uint256,uint256,bytes)"

NEXT_NONCE_SELECTOR = bytes(Web3.keccak(text=NEXT_NONCE_SIGNATURE)[:4])
SET_EXECUTION_OVERHEAD_SELECTOR = bytes(Web3.keccak(text=SET_EXECUTION_OVERHEAD_SIGNATURE)[:4])

# Error(string)
_ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")


@dataclass
class SubmittedTx:
    """A submitted switchboard transaction."""
    tx_hash: str
    chain_id: int
    switchboard: str
    update_nonce: int
    account_nonce: int
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _hex_to_bytes(value: str) -> bytes:
    value = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(value)


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


def receipt_status(receipt: Dict[str, Any]) -> int:
    """Receipt status as an int. A receipt without a status counts as failed."""
    return _to_int(receipt.get("status", "0x0"))


def decode_revert_reason(data: Any) -> Optional[str]:
    """Decode revert data from a node error; falls back to the raw hex."""
    if not isinstance(data, str) or not data.startswith("0x") or len(data) < 10:
        return data if isinstance(data, str) and data else None
    raw = _hex_to_bytes(data)
    if raw[:4] == _ERROR_STRING_SELECTOR:
        try:
            (reason,) = decode(["string"], raw[4:])
            return reason
        except DecodingError:
            return data
    return data


def encode_next_nonce(signer_address: str) -> bytes:
    """Encode nextNonce(address) calldata."""
    return NEXT_NONCE_SELECTOR + encode(["address"], [Web3.to_checksum_address(signer_address)])


def encode_set_execution_overhead(
    nonce: int,
    dst_chain_id: int,
    execution_overhead: int,
    signature: str,
) -> bytes:
    """Encode setExecutionOverhead(uint256,uint256,uint256,bytes) calldata."""
    try:
        signature_bytes = _hex_to_bytes(signature)
        return SET_EXECUTION_OVERHEAD_SELECTOR + encode(
            ["uint256", "uint256", "uint256", "bytes"],
            [int(nonce), int(dst_chain_id), int(execution_overhead), signature_bytes],
        )
    except (AbiEncodingError, ValueError, TypeError) as e:
        raise EncodingError(f"Could not encode setExecutionOverhead call: {e}") from e


def _submission_error(step: str, error: RPCError, **details) -> SubmissionError:
    revert_reason = decode_revert_reason(error.data)
    return SubmissionError(
        f"{step} rejected: {error}",
        revert_reason=revert_reason,
        details={"rpc_code": error.code, **details},
    )


class SwitchboardClient:
    """
    Client for one switchboard contract on one chain.

    `rpc` is any object with the ChainRPCClient coroutine surface.
    """

    def __init__(
        self,
        rpc: Any,
        address: str,
        chain_id: Optional[int] = None,
        gas_limit_buffer_percent: int = 20,
        use_eip1559: bool = True,
    ):
        if not Web3.is_address(address):
            raise EncodingError(f"Invalid switchboard address: {address}")
        self._rpc = rpc
        self._address = Web3.to_checksum_address(address)
        self._chain_id = int(chain_id if chain_id is not None else rpc.chain_id)
        self._gas_limit_buffer_percent = gas_limit_buffer_percent
        self._use_eip1559 = use_eip1559

    @property
    def address(self) -> str:
        return self._address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    async def next_nonce(self, signer_address: str) -> int:
        """
        Read nextNonce(signer) from the switchboard.

        Raises:
            SubmissionError: if the call is rejected by the node
        """
        call = {
            "to": self._address,
            "data": Web3.to_hex(encode_next_nonce(signer_address)),
        }
        try:
            result = await self._rpc.eth_call(call)
        except RPCError as e:
            raise _submission_error("nextNonce call", e, switchboard=self._address) from e

        try:
            (nonce,) = decode(["uint256"], _hex_to_bytes(result))
        except (DecodingError, TypeError, ValueError, AttributeError) as e:
            # "0x" when there is no contract at the address
            raise SubmissionError(
                f"nextNonce call returned no data: {result!r}",
                details={"switchboard": self._address},
            ) from e
        return nonce

    async def _fee_fields(self) -> Dict[str, int]:
        if self._use_eip1559:
            base_fee = await self._rpc.get_base_fee()
            if base_fee is not None:
                priority_fee = await self._rpc.get_max_priority_fee()
                return {
                    "maxFeePerGas": base_fee * 2 + priority_fee,
                    "maxPriorityFeePerGas": priority_fee,
                }
        return {"gasPrice": await self._rpc.get_gas_price()}

    async def set_execution_overhead(
        self,
        signer: DigestSigner,
        nonce: int,
        dst_chain_id: int,
        execution_overhead: int,
        signature: str,
    ) -> SubmittedTx:
        """
        Sign and broadcast setExecutionOverhead.

        Gas estimation simulates the call first, so a stale nonce or an
        unauthorized signer surfaces here as a rejection.

        Raises:
            SubmissionError: if estimation or broadcast is rejected
        """
        sender = await signer.get_address()
        data = Web3.to_hex(
            encode_set_execution_overhead(nonce, dst_chain_id, execution_overhead, signature)
        )
        call = {"from": sender, "to": self._address, "data": data, "value": "0x0"}

        try:
            estimated = await self._rpc.estimate_gas(call)
            gas_limit = estimated * (100 + self._gas_limit_buffer_percent) // 100
            account_nonce = await self._rpc.get_nonce(sender)
            fees = await self._fee_fields()
        except RPCError as e:
            raise _submission_error(
                "setExecutionOverhead simulation",
                e,
                switchboard=self._address,
                update_nonce=nonce,
            ) from e

        tx = {
            "chainId": self._chain_id,
            "to": self._address,
            "data": data,
            "value": 0,
            "gas": gas_limit,
            "nonce": account_nonce,
            **fees,
        }
        raw_tx = await signer.sign_transaction(tx)

        try:
            tx_hash = await self._rpc.send_raw_transaction(raw_tx)
        except RPCError as e:
            raise _submission_error(
                "setExecutionOverhead broadcast",
                e,
                switchboard=self._address,
                update_nonce=nonce,
            ) from e

        return SubmittedTx(
            tx_hash=tx_hash,
            chain_id=self._chain_id,
            switchboard=self._address,
            update_nonce=nonce,
            account_nonce=account_nonce,
        )

    async def wait_for_inclusion(
        self,
        tx_hash: str,
        timeout_seconds: float = 120.0,
        poll_interval: float = 2.0,
    ) -> Dict[str, Any]:
        """
        Poll for the receipt until the transaction is mined.

        Raises:
            SubmissionError: if the transaction reverted or the receipt
                cannot be fetched
            ConfirmationTimeoutError: if no receipt appears in time
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_seconds

        while True:
            try:
                receipt = await self._rpc.get_transaction_receipt(tx_hash)
            except RPCError as e:
                raise SubmissionError(
                    f"Could not fetch receipt for {tx_hash}: {e}",
                    tx_hash=tx_hash,
                ) from e

            if receipt:
                if receipt_status(receipt) != 1:
                    raise SubmissionError(
                        f"Transaction {tx_hash} reverted on-chain or reported no status",
                        tx_hash=tx_hash,
                    )
                return receipt

            if loop.time() >= deadline:
                raise ConfirmationTimeoutError(tx_hash, timeout_seconds)

            await asyncio.sleep(poll_interval)
