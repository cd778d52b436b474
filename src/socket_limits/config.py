"""
Configuration management for socket-limits.

Provides centralized configuration for:
- RPC endpoints per chain
- Signer keys per chain
- Inclusion wait timeouts
- Gas parameters for the update transaction
- Logging configuration

Values come from environment variables with prefix SOCKET_LIMITS_.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .chains import CHAIN_SLUG_TO_ID, ChainSlug
from .errors import ConfigurationError

ENV_PREFIX = "SOCKET_LIMITS_"

# Public endpoints used when no override is set. Chains missing here need
# SOCKET_LIMITS_<SLUG>_RPC_URL before they can be used.
DEFAULT_RPC_URLS: Dict[ChainSlug, str] = {
    ChainSlug.MAINNET: "https://ethereum-rpc.publicnode.com",
    ChainSlug.ARBITRUM: "https://arb1.arbitrum.io/rpc",
    ChainSlug.OPTIMISM: "https://mainnet.optimism.io",
    ChainSlug.BSC: "https://bsc-dataseed.bnbchain.org",
    ChainSlug.POLYGON_MAINNET: "https://polygon-rpc.com",
    ChainSlug.AVALANCHE: "https://api.avax.network/ext/bc/C/rpc",
    ChainSlug.BASE: "https://mainnet.base.org",
    ChainSlug.MODE: "https://mainnet.mode.network",
    ChainSlug.MANTLE: "https://rpc.mantle.xyz",
    ChainSlug.SEPOLIA: "https://ethereum-sepolia-rpc.publicnode.com",
    ChainSlug.ARBITRUM_SEPOLIA: "https://sepolia-rollup.arbitrum.io/rpc",
    ChainSlug.OPTIMISM_SEPOLIA: "https://sepolia.optimism.io",
    ChainSlug.BSC_TESTNET: "https://bsc-testnet-rpc.publicnode.com",
    ChainSlug.HARDHAT: "http://127.0.0.1:8545",
}


@dataclass
class ChainConfig:
    """Configuration for one chain."""
    chain_id: int
    slug: str
    rpc_url: Optional[str] = None

    # Inclusion wait
    confirmation_timeout_seconds: float = 120.0
    poll_interval_seconds: float = 2.0

    # Gas settings
    gas_limit_buffer_percent: int = 20
    use_eip1559: bool = True

    # HTTP
    http_timeout_seconds: float = 30.0

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise ConfigurationError(
                f"No RPC endpoint configured for {self.slug} ({self.chain_id})",
                details={"chain_id": self.chain_id, "slug": self.slug},
            )
        return self.rpc_url


@dataclass
class SignerConfig:
    """Private keys by chain id. Keys never leave this object unmasked."""
    private_keys: Dict[int, str] = field(default_factory=dict)

    def has_key(self, chain_id: int) -> bool:
        return int(chain_id) in self.private_keys

    def __repr__(self) -> str:
        return f"SignerConfig(chains={sorted(self.private_keys)})"


@dataclass
class LoggingConfig:
    """Configuration for operation logging."""
    level: str = "INFO"
    json_format: bool = False

    transaction_level: str = "INFO"
    error_level: str = "ERROR"

    # Partial masking for privacy
    mask_addresses: bool = False

    audit_log_enabled: bool = False
    audit_log_path: Optional[str] = None  # None = use default logger


@dataclass
class LimitsUpdaterConfig:
    """
    Master configuration for socket-limits.

    Supports loading from environment variables with prefix SOCKET_LIMITS_.
    """
    chains: Dict[int, ChainConfig] = field(default_factory=dict)
    signers: SignerConfig = field(default_factory=SignerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Hold a per-signer lock from nonce read through inclusion
    serialize_per_signer: bool = False

    def get_chain_config(self, chain_id: int) -> ChainConfig:
        """Get configuration for a specific chain."""
        chain_id = int(chain_id)
        if chain_id not in self.chains:
            raise ConfigurationError(
                f"Unknown chain id: {chain_id}",
                details={"chain_id": chain_id},
            )
        return self.chains[chain_id]

    def is_chain_supported(self, chain_id: int) -> bool:
        return int(chain_id) in self.chains


def _get_env(key: str, default: Any = None, prefix: str = ENV_PREFIX) -> Any:
    """Get environment variable with prefix."""
    return os.getenv(f"{prefix}{key}", default)


def _get_env_bool(key: str, default: bool = False) -> bool:
    value = _get_env(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_env_float(key: str, default: float) -> float:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(
            f"{ENV_PREFIX}{key} must be a number, got {value!r}"
        ) from None


def _build_chain_config(slug: ChainSlug, chain_id: int) -> ChainConfig:
    """Build a ChainConfig with environment variable overrides."""
    env_key = f"{slug.name}_RPC_URL"
    rpc_url = (
        _get_env(env_key)
        or os.getenv(env_key)
        or DEFAULT_RPC_URLS.get(slug)
    )

    return ChainConfig(
        chain_id=chain_id,
        slug=slug.value,
        rpc_url=rpc_url,
        confirmation_timeout_seconds=_get_env_float("CONFIRMATION_TIMEOUT_SECONDS", 120.0),
        poll_interval_seconds=_get_env_float("POLL_INTERVAL_SECONDS", 2.0),
    )


def _build_signer_config(chains: Dict[int, ChainConfig]) -> SignerConfig:
    """
    Collect signer keys.

    A chain-specific key wins; the shared key only applies to chains that
    have an RPC endpoint.
    """
    shared_key = _get_env("SIGNER_PRIVATE_KEY")
    keys: Dict[int, str] = {}
    for chain_id, chain_config in chains.items():
        chain_key = _get_env(f"{chain_config.slug.upper()}_PRIVATE_KEY")
        if chain_key:
            keys[chain_id] = chain_key
        elif shared_key and chain_config.rpc_url:
            keys[chain_id] = shared_key
    return SignerConfig(private_keys=keys)


def build_default_config() -> LimitsUpdaterConfig:
    """Build default configuration with every registry chain."""
    chains = {
        chain_id: _build_chain_config(slug, chain_id)
        for slug, chain_id in CHAIN_SLUG_TO_ID.items()
    }

    return LimitsUpdaterConfig(
        chains=chains,
        signers=_build_signer_config(chains),
        logging=LoggingConfig(
            level=_get_env("LOG_LEVEL", "INFO"),
            json_format=_get_env_bool("LOG_JSON"),
            mask_addresses=_get_env_bool("MASK_ADDRESSES"),
            audit_log_enabled=_get_env_bool("AUDIT_LOG_ENABLED"),
            audit_log_path=_get_env("AUDIT_LOG_PATH"),
        ),
        serialize_per_signer=_get_env_bool("SERIALIZE_PER_SIGNER"),
    )


# Global configuration instance
_global_config: Optional[LimitsUpdaterConfig] = None


def get_config() -> LimitsUpdaterConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = build_default_config()
    return _global_config


def set_config(config: Optional[LimitsUpdaterConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _global_config
    _global_config = config


def get_chain_config(chain_id: int) -> ChainConfig:
    """Convenience function to get chain configuration."""
    return get_config().get_chain_config(chain_id)
