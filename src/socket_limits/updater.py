"""
Execution overhead updates for switchboards.

One update runs strictly in order:

    Idle -> NonceFetched -> DigestComputed -> Signed -> Submitted -> Confirmed | Failed

There is no retry. Any failure is logged once and re-raised to the caller,
who decides whether to start over with a fresh nonce. The switchboard's
nonce check is the only guard against two concurrent updates from the same
signer; pass serialize_per_signer=True to queue them locally instead.
"""
from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .chains import ChainRegistry, ChainSlug, default_registry
from .config import ChainConfig, LimitsUpdaterConfig, get_config
from .confirmation import ConfirmationChecker, ReceiptConfirmationChecker
from .digest import execution_overhead_digest
from .errors import (
    ConfigurationError,
    ConfirmationCheckError,
    ConfirmationTimeoutError,
    EncodingError,
    SubmissionError,
    UpdateError,
)
from .logging_utils import ChainLogger, OperationContext, OperationType, get_chain_logger
from .rpc_client import get_rpc_client
from .signer import SignerProvider
from .switchboard import SwitchboardClient

ChainRef = Union[int, ChainSlug, str]
SwitchboardFactory = Callable[[int, str], Any]


class UpdateState(str, Enum):
    """Progress of a single update."""
    IDLE = "idle"
    NONCE_FETCHED = "nonce_fetched"
    DIGEST_COMPUTED = "digest_computed"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class UpdateErrorKind(str, Enum):
    """Tag for each failure class an update can end in."""
    CONFIGURATION = "configuration"
    ENCODING = "encoding"
    SUBMISSION = "submission"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"
    CONFIRMATION_CHECK = "confirmation_check"


_ERROR_KINDS: Tuple[Tuple[type, UpdateErrorKind], ...] = (
    (ConfigurationError, UpdateErrorKind.CONFIGURATION),
    (EncodingError, UpdateErrorKind.ENCODING),
    (SubmissionError, UpdateErrorKind.SUBMISSION),
    (ConfirmationTimeoutError, UpdateErrorKind.CONFIRMATION_TIMEOUT),
    (ConfirmationCheckError, UpdateErrorKind.CONFIRMATION_CHECK),
)


def classify_error(error: UpdateError) -> UpdateErrorKind:
    for error_type, kind in _ERROR_KINDS:
        if isinstance(error, error_type):
            return kind
    raise TypeError(f"Unclassified update error: {type(error).__name__}")


@dataclass
class UpdateResult:
    """Outcome of an update without exception propagation."""
    ok: bool
    value: Optional[bool] = None
    error: Optional[UpdateError] = None
    error_kind: Optional[UpdateErrorKind] = None

    @classmethod
    def success(cls, value: bool) -> "UpdateResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: UpdateError) -> "UpdateResult":
        return cls(ok=False, error=error, error_kind=classify_error(error))

    def unwrap(self) -> bool:
        """Return the value or raise the captured error."""
        if not self.ok:
            raise self.error  # type: ignore[misc]
        return bool(self.value)


class ExecutionOverheadUpdater:
    """
    Signs and submits setExecutionOverhead on a source chain switchboard.

    Collaborators are injected so tests and alternative key stores can swap
    them without touching the update flow.
    """

    def __init__(
        self,
        signers: Optional[SignerProvider] = None,
        switchboard_factory: Optional[SwitchboardFactory] = None,
        confirmation_checker: Optional[ConfirmationChecker] = None,
        config: Optional[LimitsUpdaterConfig] = None,
        registry: Optional[ChainRegistry] = None,
        chain_logger: Optional[ChainLogger] = None,
        serialize_per_signer: Optional[bool] = None,
    ):
        self._config = config or get_config()
        self._registry = registry or default_registry()
        self._signers = signers or SignerProvider.from_config(self._config.signers)
        self._switchboard_factory = switchboard_factory or self._default_switchboard
        self._checker = confirmation_checker or ReceiptConfirmationChecker(self._rpc_for)
        if chain_logger is None:
            chain_logger = (
                ChainLogger(config=config.logging) if config is not None else get_chain_logger()
            )
        self._chain_logger = chain_logger
        self._serialize = (
            self._config.serialize_per_signer
            if serialize_per_signer is None
            else serialize_per_signer
        )
        self._locks: Dict[Tuple[int, str], asyncio.Lock] = {}

    def _rpc_for(self, chain_id: int):
        return get_rpc_client(chain_id, self._config.get_chain_config(chain_id))

    def _default_switchboard(self, chain_id: int, address: str) -> SwitchboardClient:
        chain_config = self._config.get_chain_config(chain_id)
        return SwitchboardClient(
            self._rpc_for(chain_id),
            address,
            chain_id=chain_id,
            gas_limit_buffer_percent=chain_config.gas_limit_buffer_percent,
            use_eip1559=chain_config.use_eip1559,
        )

    def _wait_settings(self, chain_id: int) -> ChainConfig:
        if self._config.is_chain_supported(chain_id):
            return self._config.get_chain_config(chain_id)
        return ChainConfig(chain_id=chain_id, slug=str(chain_id))

    def _get_lock(self, chain_id: int, address: str) -> asyncio.Lock:
        key = (chain_id, address.lower())
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def set_execution_overhead(
        self,
        src_chain: ChainRef,
        dst_chain: ChainRef,
        switchboard_address: str,
        execution_overhead: int,
    ) -> bool:
        """
        Update the execution overhead for (src, dst) on the src switchboard.

        Returns:
            The confirmation checker's verdict on the mined transaction

        Raises:
            ConfigurationError: no signer or chain configuration for src
            EncodingError: a field is not a uint256
            SubmissionError: nonce read, simulation, broadcast or execution rejected
            ConfirmationTimeoutError: not included within the wait timeout
            ConfirmationCheckError: the confirmation checker failed
        """
        async with self._chain_logger.operation_context(
            OperationType.EXECUTION_OVERHEAD_UPDATE,
            _chain_label(src_chain),
            dst_chain=_chain_label(dst_chain),
            switchboard=switchboard_address,
            execution_overhead=execution_overhead,
        ) as ctx:
            _advance(ctx, UpdateState.IDLE)
            try:
                src_chain_id = self._registry.resolve(src_chain)
                dst_chain_id = self._registry.resolve(dst_chain)
                ctx.chain_id = src_chain_id
                ctx.metadata["dst_chain_id"] = dst_chain_id
                success = await self._run_update(
                    ctx, src_chain_id, dst_chain_id, switchboard_address, execution_overhead
                )
            except Exception:
                ctx.metadata["failed_after"] = ctx.metadata["state"]
                _advance(ctx, UpdateState.FAILED)
                raise
            _advance(ctx, UpdateState.CONFIRMED)
            ctx.metadata["confirmed"] = success
        return success

    async def _run_update(
        self,
        ctx: OperationContext,
        src_chain_id: int,
        dst_chain_id: int,
        switchboard_address: str,
        execution_overhead: int,
    ) -> bool:
        # Resolved before any network call
        signer = self._signers.get_signer(src_chain_id)
        switchboard = self._switchboard_factory(src_chain_id, switchboard_address)
        signer_address = await signer.get_address()

        async with AsyncExitStack() as stack:
            if self._serialize:
                await stack.enter_async_context(self._get_lock(src_chain_id, signer_address))

            nonce = await switchboard.next_nonce(signer_address)
            _advance(ctx, UpdateState.NONCE_FETCHED)
            self._chain_logger.log_nonce(src_chain_id, signer_address, nonce)

            digest = execution_overhead_digest(
                nonce, src_chain_id, dst_chain_id, execution_overhead
            )
            _advance(ctx, UpdateState.DIGEST_COMPUTED)

            signature = await signer.sign_digest(digest)
            _advance(ctx, UpdateState.SIGNED)

            submitted = await switchboard.set_execution_overhead(
                signer, nonce, dst_chain_id, execution_overhead, signature
            )
            _advance(ctx, UpdateState.SUBMITTED)
            ctx.metadata["tx_hash"] = submitted.tx_hash
            ctx.metadata["nonce"] = nonce
            self._chain_logger.log_transaction_submitted(
                submitted.tx_hash,
                src_chain_id,
                signer_address,
                switchboard.address,
                nonce,
            )

            wait = self._wait_settings(src_chain_id)
            receipt = await switchboard.wait_for_inclusion(
                submitted.tx_hash,
                timeout_seconds=wait.confirmation_timeout_seconds,
                poll_interval=wait.poll_interval_seconds,
            )
            self._chain_logger.log_transaction_included(
                submitted.tx_hash,
                src_chain_id,
                _receipt_int(receipt, "blockNumber"),
                _receipt_int(receipt, "gasUsed"),
            )

        return await self._checker.is_transaction_successful(submitted.tx_hash, src_chain_id)

    async def try_set_execution_overhead(
        self,
        src_chain: ChainRef,
        dst_chain: ChainRef,
        switchboard_address: str,
        execution_overhead: int,
    ) -> UpdateResult:
        """Same as set_execution_overhead, with failures returned as a tagged result."""
        try:
            value = await self.set_execution_overhead(
                src_chain, dst_chain, switchboard_address, execution_overhead
            )
        except UpdateError as e:
            return UpdateResult.failure(e)
        return UpdateResult.success(value)


def _chain_label(chain: ChainRef) -> Union[int, str]:
    return chain.value if isinstance(chain, ChainSlug) else chain


def _advance(ctx: OperationContext, state: UpdateState) -> None:
    ctx.metadata["state"] = state.value


def _receipt_int(receipt: Dict[str, Any], key: str) -> Optional[int]:
    value = receipt.get(key)
    if value is None:
        return None
    return int(value, 16) if isinstance(value, str) else int(value)


_updater: Optional[ExecutionOverheadUpdater] = None


def get_updater() -> ExecutionOverheadUpdater:
    """Get the process-wide updater built from configuration."""
    global _updater
    if _updater is None:
        _updater = ExecutionOverheadUpdater()
    return _updater


async def set_execution_overhead(
    src_chain_id: int,
    dst_chain_id: int,
    switchboard_address: str,
    execution_overhead: int,
) -> bool:
    """Update execution overhead using the configured signer and RPC for src."""
    return await get_updater().set_execution_overhead(
        src_chain_id, dst_chain_id, switchboard_address, execution_overhead
    )
