"""
Tests for socket_limits.addresses.

Tests cover:
- Parsing the deployment tooling's address file
- Address validation and checksumming
- Switchboard lookup by remote chain and integration type
- File loading errors
"""
from __future__ import annotations

import json

import pytest
from pydantic import ValidationError
from web3 import Web3

from socket_limits.addresses import (
    ChainSocketAddresses,
    DeploymentAddresses,
    IntegrationType,
    SwitchboardConfigs,
    load_deployment_addresses,
)
from socket_limits.errors import ConfigurationError


def _addr(n: int) -> str:
    return Web3.to_checksum_address("0x" + f"{n:040x}")


CORE_CONTRACTS = {
    "Counter": _addr(1),
    "CapacitorFactory": _addr(2),
    "ExecutionManager": _addr(3),
    "GasPriceOracle": _addr(4),
    "Hasher": _addr(5),
    "SignatureVerifier": _addr(6),
    "Socket": _addr(7),
    "TransmitManager": _addr(8),
}


@pytest.fixture
def deployment_data():
    return {
        "10": {
            **CORE_CONTRACTS,
            "integrations": {
                "1": {
                    "FAST": {
                        "switchboard": _addr(9),
                        "capacitor": _addr(10),
                        "decapacitor": _addr(11),
                    },
                    "OPTIMISTIC": {"switchboard": _addr(12)},
                },
            },
        },
        "1": dict(CORE_CONTRACTS),
    }


class TestModels:
    """Tests for the address book models."""

    def test_parse(self, deployment_data):
        addresses = DeploymentAddresses.model_validate(deployment_data)

        assert addresses.chain_ids() == [1, 10]
        optimism = addresses.get(10)
        assert optimism.socket == _addr(7)
        assert optimism.transmit_manager == _addr(8)

    def test_populate_by_field_name(self):
        fields = {
            "counter": _addr(1),
            "capacitor_factory": _addr(2),
            "execution_manager": _addr(3),
            "gas_price_oracle": _addr(4),
            "hasher": _addr(5),
            "signature_verifier": _addr(6),
            "socket": _addr(7),
            "transmit_manager": _addr(8),
        }
        chain = ChainSocketAddresses(**fields)
        assert chain.integrations is None
        assert chain.integration(1) is None

    def test_addresses_are_checksummed(self):
        configs = SwitchboardConfigs(switchboard="0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266")
        assert configs.switchboard == "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

    def test_invalid_address_rejected(self):
        with pytest.raises(ValidationError):
            SwitchboardConfigs(switchboard="0xnot-an-address")

    def test_missing_core_contract_rejected(self):
        data = dict(CORE_CONTRACTS)
        del data["Socket"]
        with pytest.raises(ValidationError):
            ChainSocketAddresses.model_validate(data)

    def test_unknown_chain_rejected(self, deployment_data):
        deployment_data["999999"] = dict(CORE_CONTRACTS)
        with pytest.raises(ValidationError):
            DeploymentAddresses.model_validate(deployment_data)

    def test_unknown_remote_chain_rejected(self, deployment_data):
        deployment_data["10"]["integrations"]["999999"] = {"FAST": {"switchboard": _addr(13)}}
        with pytest.raises(ValidationError):
            DeploymentAddresses.model_validate(deployment_data)

    def test_models_are_frozen(self, deployment_data):
        addresses = DeploymentAddresses.model_validate(deployment_data)
        with pytest.raises(ValidationError):
            addresses.get(10).socket = _addr(99)

    def test_to_dict_uses_file_keys(self, deployment_data):
        chain = DeploymentAddresses.model_validate(deployment_data).get(10)
        dumped = chain.to_dict()
        assert dumped["Socket"] == _addr(7)
        assert "socket" not in dumped


class TestSwitchboardLookup:
    """Tests for switchboard resolution."""

    @pytest.fixture
    def addresses(self, deployment_data):
        return DeploymentAddresses.model_validate(deployment_data)

    def test_fast_is_default(self, addresses):
        assert addresses.switchboard_for(10, 1) == _addr(9)

    def test_integration_type(self, addresses):
        assert addresses.switchboard_for(10, 1, IntegrationType.OPTIMISTIC) == _addr(12)

    def test_integration_configs(self, addresses):
        configs = addresses.get(10).integration(1)
        assert configs.capacitor == _addr(10)
        assert configs.decapacitor == _addr(11)

    def test_missing_integration_type(self, addresses):
        with pytest.raises(ConfigurationError, match="NATIVE_BRIDGE"):
            addresses.switchboard_for(10, 1, IntegrationType.NATIVE_BRIDGE)

    def test_chain_without_integrations(self, addresses):
        with pytest.raises(ConfigurationError):
            addresses.switchboard_for(1, 10)

    def test_chain_not_deployed(self, addresses):
        with pytest.raises(ConfigurationError):
            addresses.switchboard_for(8453, 1)


class TestLoadDeploymentAddresses:
    """Tests for loading address files."""

    def test_load(self, tmp_path, deployment_data):
        path = tmp_path / "addresses.json"
        path.write_text(json.dumps(deployment_data))

        addresses = load_deployment_addresses(path)
        assert addresses.switchboard_for(10, 1) == _addr(9)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Could not read"):
            load_deployment_addresses(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "addresses.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Could not read"):
            load_deployment_addresses(path)

    def test_invalid_contents(self, tmp_path):
        path = tmp_path / "addresses.json"
        path.write_text(json.dumps({"10": {"Socket": "nope"}}))
        with pytest.raises(ConfigurationError, match="Invalid deployment addresses"):
            load_deployment_addresses(path)
