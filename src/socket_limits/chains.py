"""
Chain registry for Socket deployments.

Maps logical chain slugs to numeric EVM chain ids. The table is built once,
exposed read-only and wrapped in a ChainRegistry that can be passed to
whatever needs lookups.
"""
from __future__ import annotations

from enum import Enum, IntEnum
from types import MappingProxyType
from typing import FrozenSet, Iterator, Mapping, Optional, Tuple, Union

from .errors import ConfigurationError


class ChainSlug(str, Enum):
    """Supported chain slugs."""
    # Mainnets
    MAINNET = "mainnet"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    BSC = "bsc"
    POLYGON_MAINNET = "polygon_mainnet"
    AVALANCHE = "avalanche"
    BASE = "base"
    MODE = "mode"
    AEVO = "aevo"
    LYRA = "lyra"
    HOOK = "hook"
    PARALLEL = "parallel"
    MANTLE = "mantle"
    REYA = "reya"

    # Testnets
    GOERLI = "goerli"
    SEPOLIA = "sepolia"
    ARBITRUM_GOERLI = "arbitrum_goerli"
    ARBITRUM_SEPOLIA = "arbitrum_sepolia"
    OPTIMISM_GOERLI = "optimism_goerli"
    OPTIMISM_SEPOLIA = "optimism_sepolia"
    BSC_TESTNET = "bsc_testnet"
    POLYGON_MUMBAI = "polygon_mumbai"
    AEVO_TESTNET = "aevo_testnet"
    LYRA_TESTNET = "lyra_testnet"
    XAI_TESTNET = "xai_testnet"
    SX_NETWORK_TESTNET = "sx_network_testnet"
    MODE_TESTNET = "mode_testnet"
    VICTION_TESTNET = "viction_testnet"
    CDK_TESTNET = "cdk_testnet"
    ANCIENT8_TESTNET = "ancient8_testnet"
    ANCIENT8_TESTNET2 = "ancient8_testnet2"
    HOOK_TESTNET = "hook_testnet"
    REYA_CRONOS = "reya_cronos"

    # Local
    HARDHAT = "hardhat"


class ChainId(IntEnum):
    """Numeric EVM chain ids."""
    MAINNET = 1
    ARBITRUM = 42161
    OPTIMISM = 10
    BSC = 56
    POLYGON_MAINNET = 137
    AVALANCHE = 43114
    BASE = 8453
    MODE = 34443
    AEVO = 2999
    LYRA = 957
    HOOK = 5112
    PARALLEL = 1024
    MANTLE = 5000
    REYA = 1729

    GOERLI = 5
    SEPOLIA = 11155111
    ARBITRUM_GOERLI = 421613
    ARBITRUM_SEPOLIA = 421614
    OPTIMISM_GOERLI = 420
    OPTIMISM_SEPOLIA = 11155420
    BSC_TESTNET = 97
    POLYGON_MUMBAI = 80001
    AEVO_TESTNET = 11155112
    LYRA_TESTNET = 901
    XAI_TESTNET = 47279324479
    SX_NETWORK_TESTNET = 647
    MODE_TESTNET = 919
    VICTION_TESTNET = 89
    CDK_TESTNET = 686669576
    ANCIENT8_TESTNET = 2863311531
    ANCIENT8_TESTNET2 = 28122024
    HOOK_TESTNET = 3441006
    REYA_CRONOS = 89346162

    HARDHAT = 31337


class NativeSwitchboard(IntEnum):
    """Native bridge switchboard flavours."""
    NON_NATIVE = 0
    ARBITRUM_L1 = 1
    ARBITRUM_L2 = 2
    OPTIMISM = 3
    POLYGON_L1 = 4
    POLYGON_L2 = 5


# Every slug has exactly one id; enum member names line up one-to-one.
CHAIN_SLUG_TO_ID: Mapping[ChainSlug, int] = MappingProxyType(
    {slug: int(ChainId[slug.name]) for slug in ChainSlug}
)

TESTNET_IDS: FrozenSet[int] = frozenset({
    ChainId.GOERLI,
    ChainId.SEPOLIA,
    ChainId.ARBITRUM_GOERLI,
    ChainId.ARBITRUM_SEPOLIA,
    ChainId.OPTIMISM_GOERLI,
    ChainId.OPTIMISM_SEPOLIA,
    ChainId.BSC_TESTNET,
    ChainId.POLYGON_MUMBAI,
    ChainId.AEVO_TESTNET,
    ChainId.LYRA_TESTNET,
    ChainId.XAI_TESTNET,
    ChainId.SX_NETWORK_TESTNET,
    ChainId.MODE_TESTNET,
    ChainId.VICTION_TESTNET,
    ChainId.CDK_TESTNET,
    ChainId.ANCIENT8_TESTNET,
    ChainId.ANCIENT8_TESTNET2,
    ChainId.HOOK_TESTNET,
    ChainId.REYA_CRONOS,
    ChainId.HARDHAT,
})

MAINNET_IDS: FrozenSet[int] = frozenset(
    int(chain_id) for chain_id in ChainId if chain_id not in TESTNET_IDS
)

L1_IDS: FrozenSet[int] = frozenset({
    ChainId.MAINNET,
    ChainId.GOERLI,
    ChainId.SEPOLIA,
})

L2_IDS: FrozenSet[int] = frozenset({
    ChainId.ARBITRUM,
    ChainId.ARBITRUM_GOERLI,
    ChainId.ARBITRUM_SEPOLIA,
    ChainId.OPTIMISM,
    ChainId.OPTIMISM_GOERLI,
    ChainId.OPTIMISM_SEPOLIA,
    ChainId.POLYGON_MAINNET,
    ChainId.POLYGON_MUMBAI,
    ChainId.BASE,
})


class ChainRegistry:
    """
    Read-only slug/id lookup.

    Construct once at startup and hand the same instance to every consumer.
    """

    def __init__(self, table: Optional[Mapping[ChainSlug, int]] = None):
        source = dict(table if table is not None else CHAIN_SLUG_TO_ID)
        ids = list(source.values())
        if len(set(ids)) != len(ids):
            raise ConfigurationError("Chain registry contains duplicate chain ids")

        self._slug_to_id: Mapping[ChainSlug, int] = MappingProxyType(source)
        self._id_to_slug: Mapping[int, ChainSlug] = MappingProxyType(
            {chain_id: slug for slug, chain_id in source.items()}
        )

    def id_of(self, slug: Union[ChainSlug, str]) -> int:
        """Return the chain id for a slug."""
        key = self._coerce_slug(slug)
        try:
            return self._slug_to_id[key]
        except KeyError:
            raise ConfigurationError(
                f"Chain {key.value} is not in the registry",
                details={"slug": key.value},
            ) from None

    def resolve(self, chain: Union[int, ChainSlug, str]) -> int:
        """Accept a chain id, a decimal id string or a slug; return the id."""
        if isinstance(chain, int):
            return int(chain)
        if isinstance(chain, str) and chain.isdigit():
            return int(chain)
        return self.id_of(chain)

    def slug_of(self, chain_id: int) -> ChainSlug:
        """Return the slug for a chain id."""
        try:
            return self._id_to_slug[int(chain_id)]
        except KeyError:
            raise ConfigurationError(
                f"Unknown chain id: {chain_id}",
                details={"chain_id": chain_id},
            ) from None

    def is_known(self, chain_id: int) -> bool:
        return int(chain_id) in self._id_to_slug

    def is_testnet(self, chain_id: int) -> bool:
        return int(chain_id) in TESTNET_IDS

    def items(self) -> Iterator[Tuple[ChainSlug, int]]:
        return iter(self._slug_to_id.items())

    def __len__(self) -> int:
        return len(self._slug_to_id)

    def __contains__(self, slug: object) -> bool:
        try:
            return self._coerce_slug(slug) in self._slug_to_id  # type: ignore[arg-type]
        except ConfigurationError:
            return False

    @staticmethod
    def _coerce_slug(slug: Union[ChainSlug, str]) -> ChainSlug:
        if isinstance(slug, ChainSlug):
            return slug
        try:
            return ChainSlug(str(slug).lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown chain slug: {slug}",
                details={"slug": slug},
            ) from None


_default_registry: Optional[ChainRegistry] = None


def default_registry() -> ChainRegistry:
    """Get the process-wide registry built from CHAIN_SLUG_TO_ID."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ChainRegistry()
    return _default_registry
