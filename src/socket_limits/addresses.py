"""
Deployment address book models.

Describes the per-chain contract addresses written by the deployment tooling:
core Socket contracts plus, per remote chain and integration type, the
switchboard/capacitor/decapacitor triple. Models are frozen; this package
only reads them.
"""
from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator
from web3 import Web3

from .chains import ChainId
from .errors import ConfigurationError

_KNOWN_CHAIN_IDS = frozenset(int(chain_id) for chain_id in ChainId)


class IntegrationType(str, Enum):
    """How messages between two chains are verified."""
    FAST = "FAST"
    OPTIMISTIC = "OPTIMISTIC"
    NATIVE_BRIDGE = "NATIVE_BRIDGE"


def _check_address(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not Web3.is_address(value):
        raise ValueError(f"Invalid contract address: {value}")
    return Web3.to_checksum_address(value)


def _check_chain_ids(value: Dict[int, Any]) -> Dict[int, Any]:
    unknown = [chain_id for chain_id in value if chain_id not in _KNOWN_CHAIN_IDS]
    if unknown:
        raise ValueError(f"Unknown chain ids in address book: {unknown}")
    return value


class SocketModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary using the deployment file's keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SwitchboardConfigs(SocketModel):
    """Contracts deployed for one (remote chain, integration type) pair."""

    switchboard: Optional[str] = None
    capacitor: Optional[str] = None
    decapacitor: Optional[str] = None

    @field_validator("switchboard", "capacitor", "decapacitor")
    @classmethod
    def _validate_address(cls, value: Optional[str]) -> Optional[str]:
        return _check_address(value)


# remote chain id -> integration type -> configs
Integrations = Dict[int, Dict[IntegrationType, SwitchboardConfigs]]


class ChainSocketAddresses(SocketModel):
    """Core Socket contracts on one chain."""

    counter: str = Field(alias="Counter")
    capacitor_factory: str = Field(alias="CapacitorFactory")
    execution_manager: str = Field(alias="ExecutionManager")
    gas_price_oracle: str = Field(alias="GasPriceOracle")
    hasher: str = Field(alias="Hasher")
    signature_verifier: str = Field(alias="SignatureVerifier")
    socket: str = Field(alias="Socket")
    transmit_manager: str = Field(alias="TransmitManager")
    integrations: Optional[Integrations] = None

    @field_validator(
        "counter",
        "capacitor_factory",
        "execution_manager",
        "gas_price_oracle",
        "hasher",
        "signature_verifier",
        "socket",
        "transmit_manager",
    )
    @classmethod
    def _validate_core_address(cls, value: str) -> str:
        return _check_address(value)

    @field_validator("integrations")
    @classmethod
    def _validate_remote_chains(cls, value: Optional[Integrations]) -> Optional[Integrations]:
        if value is None:
            return None
        return _check_chain_ids(value)

    def integration(
        self,
        remote_chain_id: int,
        integration_type: IntegrationType = IntegrationType.FAST,
    ) -> Optional[SwitchboardConfigs]:
        """Configs for a remote chain, or None when not deployed."""
        if not self.integrations:
            return None
        return self.integrations.get(int(remote_chain_id), {}).get(integration_type)


class DeploymentAddresses(RootModel[Dict[int, ChainSocketAddresses]]):
    """Address sets keyed by chain id."""

    model_config = ConfigDict(frozen=True)

    @field_validator("root")
    @classmethod
    def _validate_chains(cls, value: Dict[int, ChainSocketAddresses]) -> Dict[int, ChainSocketAddresses]:
        return _check_chain_ids(value)

    def get(self, chain_id: int) -> Optional[ChainSocketAddresses]:
        return self.root.get(int(chain_id))

    def chain_ids(self) -> list[int]:
        return sorted(self.root)

    def switchboard_for(
        self,
        chain_id: int,
        remote_chain_id: int,
        integration_type: IntegrationType = IntegrationType.FAST,
    ) -> str:
        """
        Resolve the switchboard on `chain_id` that serves `remote_chain_id`.

        Raises:
            ConfigurationError: if no such switchboard is deployed
        """
        chain_addresses = self.get(chain_id)
        configs = (
            chain_addresses.integration(remote_chain_id, integration_type)
            if chain_addresses
            else None
        )
        if configs is None or configs.switchboard is None:
            raise ConfigurationError(
                f"No {integration_type.value} switchboard on chain {chain_id} "
                f"for remote chain {remote_chain_id}",
                details={
                    "chain_id": chain_id,
                    "remote_chain_id": remote_chain_id,
                    "integration_type": integration_type.value,
                },
            )
        return configs.switchboard

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def load_deployment_addresses(path: Union[str, Path]) -> DeploymentAddresses:
    """Load a deployment address file produced by the deployment tooling."""
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Could not read deployment addresses from {path}: {e}",
            details={"path": str(path)},
        ) from e

    try:
        return DeploymentAddresses.model_validate(data)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid deployment addresses in {path}: {e}",
            details={"path": str(path)},
        ) from e
