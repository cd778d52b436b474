"""
Tests for socket_limits.rpc_client.

Tests cover:
- Chain ID validation before the first call
- JSON-RPC error and transport error translation
- Hex quantity decoding helpers
- Client ownership on close
"""
from __future__ import annotations

import json

import httpx
import pytest

from socket_limits.config import ChainConfig, LimitsUpdaterConfig, set_config
from socket_limits.errors import ConfigurationError, RPCError, SubmissionError
from socket_limits.rpc_client import ChainRPCClient, get_rpc_client
from socket_limits.switchboard import SwitchboardClient


class FakeNode:
    """Answers JSON-RPC requests from a method -> result table."""

    def __init__(self, results=None, errors=None, status_code=200):
        self.results = {"eth_chainId": "0xa", **(results or {})}
        self.errors = errors or {}
        self.status_code = status_code
        self.methods = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        method = payload["method"]
        self.methods.append(method)

        body = {"jsonrpc": "2.0", "id": payload["id"]}
        if method in self.errors:
            body["error"] = self.errors[method]
        else:
            body["result"] = self.results.get(method)
        return httpx.Response(self.status_code, json=body)


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def http_client(node):
    return httpx.AsyncClient(transport=httpx.MockTransport(node))


@pytest.fixture
def client(optimism_chain_config, http_client):
    return ChainRPCClient(optimism_chain_config, http_client=http_client)


class TestChainValidation:
    """Tests for the chain ID check."""

    @pytest.mark.asyncio
    async def test_validated_once(self, client, node):
        node.results["eth_gasPrice"] = "0x3b9aca00"

        assert await client.get_gas_price() == 1_000_000_000
        assert await client.get_gas_price() == 1_000_000_000
        assert node.methods == ["eth_chainId", "eth_gasPrice", "eth_gasPrice"]

    @pytest.mark.asyncio
    async def test_mismatch(self, client, node):
        node.results["eth_chainId"] = "0x1"

        with pytest.raises(ConfigurationError, match="reports chain id 1"):
            await client.get_gas_price()
        assert "eth_gasPrice" not in node.methods

    @pytest.mark.asyncio
    async def test_validation_disabled(self, optimism_chain_config, http_client, node):
        client = ChainRPCClient(optimism_chain_config, http_client=http_client, validate_chain_id=False)
        node.results["eth_getTransactionCount"] = "0x5"

        assert await client.get_nonce("0x1234567890123456789012345678901234567890") == 5
        assert node.methods == ["eth_getTransactionCount"]

    def test_missing_rpc_url(self):
        with pytest.raises(ConfigurationError, match="No RPC endpoint"):
            ChainRPCClient(ChainConfig(chain_id=10, slug="optimism"))


class TestErrors:
    """Tests for error translation."""

    @pytest.mark.asyncio
    async def test_json_rpc_error(self, client, node):
        node.errors["eth_estimateGas"] = {
            "code": 3,
            "message": "execution reverted",
            "data": "0x08c379a0",
        }

        with pytest.raises(RPCError) as exc_info:
            await client.estimate_gas({"to": "0x1234567890123456789012345678901234567890"})

        assert str(exc_info.value) == "execution reverted"
        assert exc_info.value.code == 3
        assert exc_info.value.data == "0x08c379a0"

    @pytest.mark.asyncio
    async def test_http_error(self, optimism_chain_config):
        node = FakeNode(status_code=503)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(node))
        client = ChainRPCClient(optimism_chain_config, http_client=http_client)

        with pytest.raises(RPCError, match="transport error"):
            await client.get_gas_price()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>bad gateway</html>"),
            httpx.Response(200, json=[{"jsonrpc": "2.0", "id": 1, "result": "0x1"}]),
        ],
    )
    async def test_invalid_response_body(self, optimism_chain_config, response):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))
        client = ChainRPCClient(optimism_chain_config, http_client=http_client, validate_chain_id=False)

        with pytest.raises(RPCError, match="Invalid JSON-RPC response for eth_gasPrice"):
            await client.get_gas_price()

    @pytest.mark.asyncio
    async def test_invalid_body_is_a_submission_error(
        self, optimism_chain_config, signer_address, switchboard_address
    ):
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>bad gateway</html>"))
        )
        rpc = ChainRPCClient(optimism_chain_config, http_client=http_client, validate_chain_id=False)
        switchboard = SwitchboardClient(rpc, switchboard_address, chain_id=10)

        with pytest.raises(SubmissionError, match="nextNonce"):
            await switchboard.next_nonce(signer_address)


class TestMethods:
    """Tests for the typed helpers."""

    @pytest.mark.asyncio
    async def test_priority_fee_fallback(self, client, node):
        node.errors["eth_maxPriorityFeePerGas"] = {"code": -32601, "message": "method not found"}
        assert await client.get_max_priority_fee() == 1_000_000_000

    @pytest.mark.asyncio
    async def test_base_fee(self, client, node):
        node.results["eth_getBlockByNumber"] = {"number": "0x10", "baseFeePerGas": "0x64"}
        assert await client.get_base_fee() == 100

    @pytest.mark.asyncio
    async def test_base_fee_pre_london(self, client, node):
        node.results["eth_getBlockByNumber"] = {"number": "0x10"}
        assert await client.get_base_fee() is None

    @pytest.mark.asyncio
    async def test_pending_receipt(self, client, sample_tx_hash):
        assert await client.get_transaction_receipt(sample_tx_hash) is None

    @pytest.mark.asyncio
    async def test_send_raw_transaction(self, client, node, sample_tx_hash):
        node.results["eth_sendRawTransaction"] = sample_tx_hash
        assert await client.send_raw_transaction("0x02f8") == sample_tx_hash


class TestLifecycle:
    """Tests for client ownership and caching."""

    @pytest.mark.asyncio
    async def test_close_keeps_injected_client(self, client, http_client):
        await client.close()
        assert not http_client.is_closed
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_context_manager_validates(self, client, node):
        async with client as connected:
            assert connected is client
        assert node.methods == ["eth_chainId"]

    def test_get_rpc_client_is_cached(self, updater_config):
        set_config(updater_config)
        assert get_rpc_client(10) is get_rpc_client(10)
        assert get_rpc_client(10).rpc_url == "http://optimism.test"

    def test_get_rpc_client_unknown_chain(self):
        set_config(LimitsUpdaterConfig())
        with pytest.raises(ConfigurationError, match="Unknown chain id"):
            get_rpc_client(999999)
