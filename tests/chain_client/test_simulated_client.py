"""
Tests for the Simulated Chain Client.

============================================================
PURPOSE
============================================================
- Ledger effects of deposit, withdrawal, swap and burn
- Contract failures surface in the classifiable Custom(N) form
- Error injection and pause flags

============================================================
"""

import pytest

from chain_client import create_chain_client
from chain_client.exceptions import ChainClientError
from chain_client.simulated import SimulatedChainClient, SimulatedChainConfig
from contract_errors.classifier import classify
from contract_errors.codes import ContractErrorCode
from contract_errors.models import ErrorKind
from core.config import ChainConfig
from core.constants import LAMPORTS_PER_SOL
from core.exceptions import ConfigurationError, PoolNotFoundError
from pools.models import SwapDirection
from pools.normalizer import RatioNormalizer


MINT_A = "AlphaMint1111111111111111111111111111111111"
MINT_B = "BravoMint1111111111111111111111111111111111"


@pytest.fixture
def client():
    return SimulatedChainClient()


@pytest.fixture
def pool(client):
    ratio = RatioNormalizer().normalize(MINT_A, MINT_B, 10 ** 6, 10 * 10 ** 6)
    return client.create_pool(ratio, 6, 6, initial_liquidity_a=10 ** 12, initial_liquidity_b=10 ** 12)


async def funded(client):
    wallet = await client.generate_wallet()
    client.airdrop(wallet.public_key, LAMPORTS_PER_SOL)
    return wallet


class TestWallets:

    @pytest.mark.asyncio
    async def test_restore_wallet_is_deterministic(self, client):
        wallet = await client.generate_wallet()
        restored = await client.restore_wallet(wallet.private_key)
        assert restored.public_key == wallet.public_key

    @pytest.mark.asyncio
    async def test_restore_rejects_bad_key(self, client):
        with pytest.raises(ChainClientError):
            await client.restore_wallet(b"short")

    @pytest.mark.asyncio
    async def test_core_wallet_created_once(self, client):
        first = await client.get_or_create_core_wallet()
        second = await client.get_or_create_core_wallet()

        assert first.created is True
        assert second.created is False
        assert first.wallet.public_key == second.wallet.public_key
        assert first.native_balance > 0


class TestPoolOperations:

    @pytest.mark.asyncio
    async def test_deposit_then_withdraw(self, client, pool):
        funded_wallet = await funded(client)
        await client.mint_tokens(MINT_A, funded_wallet.public_key, 50_000)

        deposit = await client.execute_deposit(funded_wallet, pool.pool_id, MINT_A, 20_000, 310_000)
        assert deposit.lp_tokens_received == 20_000
        assert await client.get_token_balance(funded_wallet.public_key, pool.lp_mint_a) == 20_000

        withdrawal = await client.execute_withdrawal(funded_wallet, pool.pool_id, pool.lp_mint_a, 5_000, 290_000)
        assert withdrawal.tokens_out == 5_000
        assert await client.get_token_balance(funded_wallet.public_key, MINT_A) == 35_000

    @pytest.mark.asyncio
    async def test_swap_uses_fixed_ratio(self, client, pool):
        funded_wallet = await funded(client)
        await client.mint_tokens(MINT_A, funded_wallet.public_key, 1_000_000)

        result = await client.execute_swap(
            funded_wallet, pool.pool_id, SwapDirection.A_TO_B, 100_000, 0, 250_000
        )

        assert result.output_amount == 1_000_000
        assert await client.get_token_balance(funded_wallet.public_key, MINT_B) == 1_000_000

    @pytest.mark.asyncio
    async def test_fee_charged_per_transaction(self, client, pool):
        funded_wallet = await funded(client)
        await client.mint_tokens(MINT_A, funded_wallet.public_key, 10_000)
        result = await client.execute_deposit(funded_wallet, pool.pool_id, MINT_A, 10_000, 310_000)

        balance = await client.get_native_balance(funded_wallet.public_key)
        assert balance == LAMPORTS_PER_SOL - result.network_fee
        assert client.transactions[-1]["compute_units"] == 310_000

    @pytest.mark.asyncio
    async def test_insufficient_funds_is_classifiable(self, client, pool):
        funded_wallet = await funded(client)
        with pytest.raises(ChainClientError) as exc_info:
            await client.execute_deposit(funded_wallet, pool.pool_id, MINT_A, 1_000, 310_000)

        assert exc_info.value.code == ContractErrorCode.INSUFFICIENT_FUNDS
        assert classify(exc_info.value).kind == ErrorKind.INSUFFICIENT_FUNDS

    @pytest.mark.asyncio
    async def test_slippage_exceeded(self, client, pool):
        funded_wallet = await funded(client)
        await client.mint_tokens(MINT_A, funded_wallet.public_key, 1_000)

        with pytest.raises(ChainClientError) as exc_info:
            await client.execute_swap(
                funded_wallet, pool.pool_id, SwapDirection.A_TO_B, 1_000, 10_001, 250_000
            )

        assert classify(exc_info.value).kind == ErrorKind.SLIPPAGE_EXCEEDED

    @pytest.mark.asyncio
    async def test_pause_flags(self, client, pool):
        funded_wallet = await funded(client)
        await client.mint_tokens(MINT_A, funded_wallet.public_key, 1_000)

        client.set_pool_paused(pool.pool_id, True)
        assert await client.is_pool_paused(pool.pool_id) is True
        with pytest.raises(ChainClientError) as exc_info:
            await client.execute_deposit(funded_wallet, pool.pool_id, MINT_A, 1_000, 1)
        assert classify(exc_info.value).kind == ErrorKind.POOL_PAUSED

        client.set_pool_paused(pool.pool_id, False)
        client.set_swaps_paused(pool.pool_id, True)
        with pytest.raises(ChainClientError) as exc_info:
            await client.execute_swap(funded_wallet, pool.pool_id, SwapDirection.A_TO_B, 1_000, 0, 1)
        assert classify(exc_info.value).kind == ErrorKind.POOL_SWAPS_PAUSED

    @pytest.mark.asyncio
    async def test_unfunded_fee_payer_is_unparsed(self, client, pool):
        wallet = await client.generate_wallet()
        await client.mint_tokens(MINT_A, wallet.public_key, 1_000)

        with pytest.raises(ChainClientError) as exc_info:
            await client.execute_deposit(wallet, pool.pool_id, MINT_A, 1_000, 1)

        result = classify(exc_info.value)
        assert result.kind == ErrorKind.UNKNOWN
        assert result.code is None

    @pytest.mark.asyncio
    async def test_unknown_pool(self, client):
        with pytest.raises(PoolNotFoundError):
            await client.get_pool_state("missing")


class TestHelpers:

    @pytest.mark.asyncio
    async def test_injected_error_fires_once(self, client, pool):
        funded_wallet = await funded(client)
        await client.mint_tokens(MINT_A, funded_wallet.public_key, 2_000)
        client.inject_error(ContractErrorCode.SYSTEM_PAUSED, method="execute_deposit")

        with pytest.raises(ChainClientError) as exc_info:
            await client.execute_deposit(funded_wallet, pool.pool_id, MINT_A, 1_000, 1)
        assert classify(exc_info.value).kind == ErrorKind.SYSTEM_PAUSED

        result = await client.execute_deposit(funded_wallet, pool.pool_id, MINT_A, 1_000, 1)
        assert result.token_amount_in == 1_000

    @pytest.mark.asyncio
    async def test_burn_goes_to_burn_address(self, client, pool):
        funded_wallet = await funded(client)
        await client.mint_tokens(MINT_B, funded_wallet.public_key, 7_000)

        await client.burn_tokens(funded_wallet, MINT_B, 7_000)

        assert client.burned_amount(MINT_B) == 7_000
        assert await client.get_token_balance(funded_wallet.public_key, MINT_B) == 0

    @pytest.mark.asyncio
    async def test_contract_version(self):
        client = SimulatedChainClient(SimulatedChainConfig(contract_version="0.17.1"))
        assert await client.get_contract_version() == "0.17.1"

    def test_duplicate_pool_rejected(self, client, pool):
        ratio = RatioNormalizer().normalize(MINT_A, MINT_B, 10 ** 6, 10 * 10 ** 6)
        with pytest.raises(ChainClientError):
            client.create_pool(ratio, 6, 6)

    def test_factory(self):
        assert isinstance(create_chain_client(ChainConfig()), SimulatedChainClient)
        with pytest.raises(ConfigurationError):
            create_chain_client(ChainConfig(backend="carrier-pigeon"))
