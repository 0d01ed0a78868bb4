"""
Tests for the JSON-RPC Gateway Chain Client.

============================================================
PURPOSE
============================================================
- Request envelopes carry method and params
- Results are unwrapped into typed models
- Error objects map to the chain client exceptions

The HTTP layer is replaced by patching _post.

============================================================
"""

import pytest
from unittest.mock import AsyncMock, patch

from chain_client.exceptions import ChainClientError, RpcTransportError
from chain_client.gateway import GatewayChainClient, JsonRpcRequest
from chain_client.models import Wallet
from contract_errors.classifier import classify
from contract_errors.models import ErrorKind
from core.exceptions import PoolNotFoundError
from pools.models import SwapDirection


def ok(result, request_id=1):
    return {"jsonrpc": "2.0", "result": result, "id": request_id}


def err(message, data=None, code=-32000):
    return {"jsonrpc": "2.0", "error": {"code": code, "message": message, "data": data}, "id": 1}


@pytest.fixture
def client():
    return GatewayChainClient("http://gateway.test/rpc", timeout=5.0)


@pytest.fixture
def wallet():
    return Wallet(public_key="pub1", private_key=bytes(range(32)))


class TestRequests:

    @pytest.mark.asyncio
    async def test_swap_request_and_result(self, client, wallet):
        post = AsyncMock(return_value=ok({
            "signature": "sig1",
            "input_amount": 5_000,
            "output_amount": 50_000,
            "network_fee": 5_000,
        }))
        with patch.object(client, "_post", post):
            result = await client.execute_swap(
                wallet, "pool1", SwapDirection.B_TO_A, 5_000, 49_000, 250_000
            )

        request = post.await_args.args[0]
        assert isinstance(request, JsonRpcRequest)
        assert request.method == "execute_swap"
        assert request.params["direction"] == "b_to_a"
        assert request.params["private_key"] == wallet.private_key.hex()
        assert request.params["compute_units"] == 250_000
        assert result.output_amount == 50_000
        assert result.direction == SwapDirection.B_TO_A

    @pytest.mark.asyncio
    async def test_request_ids_increment(self, client):
        post = AsyncMock(return_value=ok(True))
        with patch.object(client, "_post", post):
            await client.is_system_paused()
            await client.is_system_paused()

        ids = [call.args[0].id for call in post.await_args_list]
        assert ids == [1, 2]

    @pytest.mark.asyncio
    async def test_pool_state_parsed(self, client):
        post = AsyncMock(return_value=ok({
            "pool_id": "pool1",
            "token_a_mint": "A",
            "token_b_mint": "B",
            "token_a_decimals": 6,
            "token_b_decimals": 9,
            "ratio_a_numerator": 1_000_000,
            "ratio_b_denominator": 2_000_000_000,
            "lp_mint_a": "lpA",
            "lp_mint_b": "lpB",
            "pool_paused": True,
        }))
        with patch.object(client, "_post", post):
            pool = await client.get_pool_state("pool1")

        assert pool.pool_paused is True
        assert pool.token_b_decimals == 9

    @pytest.mark.asyncio
    async def test_wallet_round_trip(self, client, wallet):
        post = AsyncMock(return_value=ok({"public_key": "pub1", "private_key": wallet.private_key.hex()}))
        with patch.object(client, "_post", post):
            restored = await client.restore_wallet(wallet.private_key)

        assert restored == wallet

    @pytest.mark.asyncio
    async def test_empty_contract_version(self, client):
        with patch.object(client, "_post", AsyncMock(return_value=ok(None))):
            assert await client.get_contract_version() is None


class TestErrors:

    @pytest.mark.asyncio
    async def test_contract_error_message_passed_through(self, client, wallet):
        post = AsyncMock(return_value=err(
            "Transaction simulation failed: custom program error: 0x402 (1026)",
            data={"contract_code": 1026},
        ))
        with patch.object(client, "_post", post):
            with pytest.raises(ChainClientError) as exc_info:
                await client.execute_deposit(wallet, "pool1", "A", 1_000, 310_000)

        assert exc_info.value.code == 1026
        assert exc_info.value.method == "execute_deposit"
        assert classify(exc_info.value).kind == ErrorKind.SLIPPAGE_EXCEEDED

    @pytest.mark.asyncio
    async def test_pool_not_found(self, client):
        post = AsyncMock(return_value=err("missing", data={"kind": "pool_not_found", "pool_id": "p9"}))
        with patch.object(client, "_post", post):
            with pytest.raises(PoolNotFoundError) as exc_info:
                await client.get_pool_state("p9")

        assert exc_info.value.pool_id == "p9"

    @pytest.mark.asyncio
    async def test_malformed_response(self, client):
        with patch.object(client, "_post", AsyncMock(return_value={"error": "not an object"})):
            with pytest.raises(RpcTransportError):
                await client.is_system_paused()

    @pytest.mark.asyncio
    async def test_health_false_on_transport_error(self, client):
        post = AsyncMock(side_effect=RpcTransportError("Connection error", method="health"))
        with patch.object(client, "_post", post):
            assert await client.is_healthy() is False

    @pytest.mark.asyncio
    async def test_close_without_session(self, client):
        await client.close()
        assert client.name == "gateway"
