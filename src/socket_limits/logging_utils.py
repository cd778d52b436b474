"""
Logging utilities for switchboard update operations.

Features:
- Structured logging for each update step
- Transaction lifecycle logging
- Audit trail support
- Address masking
"""
from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from .config import LoggingConfig, get_config

logger = logging.getLogger(__name__)


class OperationType(str, Enum):
    """Logged operations."""
    EXECUTION_OVERHEAD_UPDATE = "execution_overhead_update"


@dataclass
class OperationContext:
    """Context for one logged operation."""
    operation_id: str
    operation_type: OperationType
    chain_id: Union[int, str]
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None
    success: bool = False
    error: Optional[str] = None
    error_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def complete(self, success: bool = True, error: Optional[BaseException] = None) -> None:
        """Mark operation as complete."""
        self.completed_at = datetime.now(timezone.utc)
        self.duration_ms = (self.completed_at - self.started_at).total_seconds() * 1000
        self.success = success
        if error is not None:
            self.error = str(error)
            self.error_type = type(error).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "operation_type": self.operation_type.value,
            "chain_id": self.chain_id,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "success": self.success,
            "error": self.error,
            "error_type": self.error_type,
            "metadata": self.metadata,
        }


def mask_address(address: str) -> str:
    """Mask middle portion of address for privacy."""
    if len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


class ChainLogger:
    """
    Logger for switchboard update operations.

    The operation context logs a failure exactly once, where it is caught,
    and lets the exception continue to the caller.
    """

    def __init__(
        self,
        name: str = "socket_limits",
        config: Optional[LoggingConfig] = None,
    ):
        self._logger = logging.getLogger(name)
        self._config = config or get_config().logging
        self._operation_counter = 0

    def _generate_operation_id(self) -> str:
        self._operation_counter += 1
        timestamp = int(time.time() * 1000)
        return f"op_{timestamp}_{self._operation_counter}"

    def _get_level(self, level_str: str) -> int:
        return getattr(logging, level_str.upper(), logging.INFO)

    def _address(self, address: str) -> str:
        return mask_address(address) if self._config.mask_addresses else address

    @asynccontextmanager
    async def operation_context(
        self,
        operation_type: OperationType,
        chain_id: Union[int, str],
        **metadata,
    ):
        """
        Context manager for tracking an operation.

        Usage:
            async with logger.operation_context(OperationType.EXECUTION_OVERHEAD_UPDATE, 10) as ctx:
                ctx.metadata["tx_hash"] = tx_hash
        """
        ctx = OperationContext(
            operation_id=self._generate_operation_id(),
            operation_type=operation_type,
            chain_id=chain_id,
            metadata=metadata,
        )

        self._logger.debug(
            f"Starting {operation_type.value} on chain {chain_id}",
            extra={"operation": ctx.to_dict()},
        )

        try:
            yield ctx
            ctx.complete(success=True)
        except BaseException as e:
            ctx.complete(success=False, error=e)
            raise
        finally:
            level = (
                self._get_level(self._config.transaction_level)
                if ctx.success
                else self._get_level(self._config.error_level)
            )
            message = (
                f"Completed {operation_type.value} on chain {ctx.chain_id} "
                f"in {ctx.duration_ms:.0f}ms (success={ctx.success})"
            )
            if not ctx.success:
                message += f": {ctx.error_type}: {ctx.error}"
            self._logger.log(level, message, extra={"operation": ctx.to_dict()})

    def log_nonce(self, chain_id: int, address: str, nonce: int) -> None:
        self._logger.debug(
            f"Switchboard nonce for {self._address(address)} on chain {chain_id}: {nonce}"
        )

    def log_transaction_submitted(
        self,
        tx_hash: str,
        chain_id: int,
        from_address: str,
        to_address: str,
        nonce: int,
    ) -> None:
        """Log transaction submission."""
        record = {
            "tx_hash": tx_hash,
            "chain_id": chain_id,
            "from_address": self._address(from_address),
            "to_address": self._address(to_address),
            "nonce": nonce,
        }
        self._logger.log(
            self._get_level(self._config.transaction_level),
            f"Transaction submitted: {tx_hash} on chain {chain_id}",
            extra={"transaction": record},
        )
        if self._config.audit_log_enabled:
            self._write_audit_log("transaction_submitted", record)

    def log_transaction_included(
        self,
        tx_hash: str,
        chain_id: int,
        block_number: Optional[int],
        gas_used: Optional[int],
    ) -> None:
        """Log transaction inclusion."""
        record = {
            "tx_hash": tx_hash,
            "chain_id": chain_id,
            "block_number": block_number,
            "gas_used": gas_used,
        }
        self._logger.log(
            self._get_level(self._config.transaction_level),
            f"Transaction included: {tx_hash} in block {block_number}",
            extra={"transaction": record},
        )
        if self._config.audit_log_enabled:
            self._write_audit_log("transaction_included", record)

    def _write_audit_log(self, event_type: str, data: Dict[str, Any]) -> None:
        """Write to audit log."""
        audit_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "data": data,
        }

        if self._config.audit_log_path:
            try:
                with open(self._config.audit_log_path, "a") as f:
                    f.write(json.dumps(audit_entry, default=str) + "\n")
            except OSError as e:
                self._logger.error(f"Failed to write audit log: {e}")
        else:
            self._logger.info(f"AUDIT: {event_type}", extra={"audit": audit_entry})


_chain_logger: Optional[ChainLogger] = None


def get_chain_logger(
    name: str = "socket_limits",
    config: Optional[LoggingConfig] = None,
) -> ChainLogger:
    """Get the global chain logger instance."""
    global _chain_logger
    if _chain_logger is None:
        _chain_logger = ChainLogger(name, config)
    return _chain_logger


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Set up logging configuration.

    Args:
        level: Log level
        format_string: Custom format string
        json_format: Use JSON formatting
    """
    if format_string is None:
        if json_format:
            format_string = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
        else:
            format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_string,
    )

    logging.getLogger("socket_limits").setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
