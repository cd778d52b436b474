"""
Post-inclusion confirmation checks.

The updater asks a ConfirmationChecker whether a mined transaction succeeded
and returns its answer as the operation result.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .errors import ConfirmationCheckError
from .rpc_client import get_rpc_client
from .switchboard import receipt_status

logger = logging.getLogger(__name__)

RPCClientFactory = Callable[[int], Any]


class ConfirmationChecker(ABC):
    """Abstract interface for transaction outcome checks."""

    @abstractmethod
    async def is_transaction_successful(self, tx_hash: str, chain_id: int) -> bool:
        """Return True when the transaction is mined with a success status."""
        pass


class ReceiptConfirmationChecker(ConfirmationChecker):
    """Checks the receipt status on the transaction's chain."""

    def __init__(self, rpc_factory: Optional[RPCClientFactory] = None):
        self._rpc_factory = rpc_factory or get_rpc_client

    async def is_transaction_successful(self, tx_hash: str, chain_id: int) -> bool:
        try:
            rpc = self._rpc_factory(chain_id)
            receipt = await rpc.get_transaction_receipt(tx_hash)
        except Exception as e:
            raise ConfirmationCheckError(
                f"Could not check transaction {tx_hash} on chain {chain_id}: {e}",
                details={"tx_hash": tx_hash, "chain_id": chain_id},
            ) from e

        if not receipt:
            logger.info(f"No receipt for {tx_hash} on chain {chain_id}")
            return False

        return receipt_status(receipt) == 1
