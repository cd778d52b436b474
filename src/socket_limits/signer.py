"""Chain-scoped signers for switchboard updates."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from .config import SignerConfig, get_config
from .errors import ConfigurationError, EncodingError

logger = logging.getLogger(__name__)


class DigestSigner(ABC):
    """Abstract interface for anything that can authorize a switchboard update."""

    @abstractmethod
    async def get_address(self) -> str:
        """Get the signer's checksummed address."""
        pass

    @abstractmethod
    async def sign_digest(self, digest: bytes) -> str:
        """
        Sign a 32-byte digest as an EIP-191 personal message.

        The switchboard recovers the signer from this signature with the
        "\\x19Ethereum Signed Message:\\n32" prefix applied to the digest.
        """
        pass

    @abstractmethod
    async def sign_transaction(self, tx: Dict[str, Any]) -> str:
        """Sign a transaction dict and return the raw signed tx hex."""
        pass


class LocalKeySigner(DigestSigner):
    """Signer backed by a private key held in process memory."""

    def __init__(self, private_key: str):
        try:
            self._account = Account.from_key(private_key)
        except Exception as e:
            raise ConfigurationError(f"Invalid signer private key: {e}") from None

    @property
    def address(self) -> str:
        return self._account.address

    async def get_address(self) -> str:
        return self._account.address

    async def sign_digest(self, digest: bytes) -> str:
        if not isinstance(digest, (bytes, bytearray)) or len(digest) != 32:
            raise EncodingError("Digest must be exactly 32 bytes")
        signed = self._account.sign_message(encode_defunct(primitive=bytes(digest)))
        return Web3.to_hex(signed.signature)

    async def sign_transaction(self, tx: Dict[str, Any]) -> str:
        signed = self._account.sign_transaction(tx)
        return Web3.to_hex(signed.raw_transaction)

    def __repr__(self) -> str:
        return f"LocalKeySigner(address={self._account.address})"


def recover_digest_signer(digest: bytes, signature: str) -> str:
    """Recover the address that produced `signature` over `digest`."""
    return Account.recover_message(encode_defunct(primitive=bytes(digest)), signature=signature)


class SignerProvider:
    """
    Hands out the signer configured for a source chain.

    Different chains may use different keys; a chain with no entry has no
    signer and every lookup for it fails.
    """

    def __init__(self, signers: Optional[Mapping[int, DigestSigner]] = None):
        self._signers: Dict[int, DigestSigner] = {
            int(chain_id): signer for chain_id, signer in (signers or {}).items()
        }

    @classmethod
    def from_config(cls, config: Optional[SignerConfig] = None) -> "SignerProvider":
        config = config or get_config().signers
        signers: Dict[int, DigestSigner] = {}
        # Chains sharing one key share one signer instance
        by_key: Dict[str, LocalKeySigner] = {}
        for chain_id, private_key in config.private_keys.items():
            if private_key not in by_key:
                by_key[private_key] = LocalKeySigner(private_key)
            signers[chain_id] = by_key[private_key]
        logger.debug(f"Loaded signers for {len(signers)} chains")
        return cls(signers)

    def register(self, chain_id: int, signer: DigestSigner) -> None:
        self._signers[int(chain_id)] = signer

    def has_signer(self, chain_id: int) -> bool:
        return int(chain_id) in self._signers

    def get_signer(self, chain_id: int) -> DigestSigner:
        """
        Get the signer for a source chain.

        Raises:
            ConfigurationError: if no signer is configured for the chain
        """
        signer = self._signers.get(int(chain_id))
        if signer is None:
            raise ConfigurationError(
                f"No signer configured for chain {chain_id}",
                details={"chain_id": chain_id},
            )
        return signer
