"""
Pytest configuration for socket-limits tests.
"""
from __future__ import annotations

import os

import pytest

from socket_limits import rpc_client
from socket_limits.config import (
    ENV_PREFIX,
    ChainConfig,
    LimitsUpdaterConfig,
    SignerConfig,
    set_config,
)
from socket_limits.signer import LocalKeySigner

# Well-known development key (hardhat/anvil account #0)
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

SWITCHBOARD_ADDRESS = "0x1234567890123456789012345678901234567890"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate tests from SOCKET_LIMITS_* variables and cached globals."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    set_config(None)
    yield
    set_config(None)
    rpc_client._rpc_clients.clear()


@pytest.fixture
def signer_key():
    return TEST_PRIVATE_KEY


@pytest.fixture
def signer_address():
    return TEST_ADDRESS


@pytest.fixture
def switchboard_address():
    return SWITCHBOARD_ADDRESS


@pytest.fixture
def sample_tx_hash():
    """Valid transaction hash for testing."""
    return "0x" + "a" * 64


@pytest.fixture
def local_signer():
    return LocalKeySigner(TEST_PRIVATE_KEY)


@pytest.fixture
def optimism_chain_config():
    return ChainConfig(
        chain_id=10,
        slug="optimism",
        rpc_url="http://optimism.test",
        confirmation_timeout_seconds=1.0,
        poll_interval_seconds=0.0,
    )


@pytest.fixture
def updater_config(optimism_chain_config):
    """Config with optimism and mainnet wired up and a key for optimism only."""
    return LimitsUpdaterConfig(
        chains={
            10: optimism_chain_config,
            1: ChainConfig(chain_id=1, slug="mainnet", rpc_url="http://mainnet.test"),
        },
        signers=SignerConfig(private_keys={10: TEST_PRIVATE_KEY}),
    )
