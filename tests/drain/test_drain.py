"""
Tests for the Drain Handler.

============================================================
PURPOSE
============================================================
- Zero holding reports nothing to drain and burns nothing
- The holding is burned before the terminal operation
- A failed terminal operation never undoes the burn
- Terminal output is burned as well
- Remaining native balance goes back to the operational wallet

============================================================
"""

import pytest
from unittest.mock import AsyncMock, patch

from chain_client.models import DepositResult, SwapResult, WithdrawalResult
from contract_errors.recovery import RecoveryEngine
from core.exceptions import WorkerNotFoundError
from core.types import WorkerKind, WorkerStatus
from drain.handler import DrainHandler
from pools.models import SwapDirection, TokenSide
from storage.json_store import JsonFileStateStore
from workers.models import WorkerConfig
from workers.pool import WorkerPool


ONE_SOL = 1_000_000_000


@pytest.fixture
def worker_pool(tmp_path, sim_client, started_state, fast_pool_config, fast_recovery_config):
    return WorkerPool(
        sim_client,
        JsonFileStateStore(str(tmp_path)),
        started_state,
        recovery=RecoveryEngine(sim_client, fast_recovery_config),
        config=fast_pool_config,
    )


@pytest.fixture
def handler(sim_client, worker_pool):
    return DrainHandler(sim_client, worker_pool)


async def make_worker(client, worker_pool, pool, kind, mint=None, holding=0, **fields):
    """Create a funded worker holding `holding` of `mint`."""
    worker_id = await worker_pool.create(WorkerConfig(kind=kind, pool_id=pool.pool_id, **fields))
    wallet = await worker_pool.get_wallet(worker_id)
    client.airdrop(wallet.public_key, ONE_SOL)
    if mint is not None:
        client.set_token_balance(wallet.public_key, mint, holding)
    return worker_id, wallet


# ============================================================
# NOTHING TO DRAIN
# ============================================================

class TestNothingToDrain:

    @pytest.mark.asyncio
    async def test_zero_holding(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, wallet = await make_worker(sim_client, worker_pool, sim_pool, WorkerKind.DEPOSIT)

        result = await handler.drain(worker_id)

        assert result.nothing_to_drain
        assert not result.burned_anything
        assert sim_client.burned_amount(sim_pool.token_a_mint) == 0
        assert result.native_swept == 0
        assert await sim_client.get_native_balance(wallet.public_key) == ONE_SOL

    @pytest.mark.asyncio
    async def test_unknown_worker(self, handler):
        with pytest.raises(WorkerNotFoundError):
            await handler.drain("deposit_missing")


# ============================================================
# BURN FIRST
# ============================================================

class TestDepositDrain:

    @pytest.mark.asyncio
    async def test_burn_survives_failed_deposit(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, wallet = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.DEPOSIT, mint=sim_pool.token_a_mint, holding=5000
        )

        result = await handler.drain(worker_id)

        # The burned holding is gone, so the deposit fails
        assert result.tokens_used == 5000
        assert result.tokens_burned == 5000
        assert not result.operation_successful
        assert result.error_message.startswith("Deposit failed")
        assert sim_client.burned_amount(sim_pool.token_a_mint) == 5000
        assert await sim_client.get_token_balance(wallet.public_key, sim_pool.token_a_mint) == 0

    @pytest.mark.asyncio
    async def test_successful_deposit_burns_lp(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, wallet = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.DEPOSIT, mint=sim_pool.token_a_mint, holding=5000
        )
        lp_mint = sim_pool.lp_mint(TokenSide.A)

        async def deposit(wallet_, pool_id, mint, amount, compute_units):
            sim_client.set_token_balance(wallet_.public_key, lp_mint, amount)
            return DepositResult(signature="sig", token_amount_in=amount, lp_tokens_received=amount, network_fee=5000)

        with patch.object(sim_client, "execute_deposit", AsyncMock(side_effect=deposit)):
            result = await handler.drain(worker_id)

        assert result.operation_successful
        assert result.transaction_signature == "sig"
        assert result.tokens_burned == 5000
        assert result.lp_tokens_received == 5000
        assert result.lp_tokens_burned == 5000
        assert sim_client.burned_amount(lp_mint) == 5000

    @pytest.mark.asyncio
    async def test_failed_burn_aborts(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, _ = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.DEPOSIT, mint=sim_pool.token_a_mint, holding=5000
        )
        deposit = AsyncMock()

        with patch.object(sim_client, "burn_tokens", AsyncMock(side_effect=RuntimeError("rpc down"))), \
                patch.object(sim_client, "execute_deposit", deposit):
            result = await handler.drain(worker_id)

        assert not result.operation_successful
        assert result.tokens_burned == 0
        assert result.error_message == "rpc down"
        deposit.assert_not_awaited()


class TestWithdrawalDrain:

    @pytest.mark.asyncio
    async def test_burns_lp_then_withdrawn_tokens(self, handler, sim_client, worker_pool, sim_pool):
        lp_mint = sim_pool.lp_mint(TokenSide.B)
        worker_id, _ = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.WITHDRAWAL,
            mint=lp_mint, holding=7000, token_side=TokenSide.B,
        )

        async def withdraw(wallet_, pool_id, mint, amount, compute_units):
            sim_client.set_token_balance(wallet_.public_key, sim_pool.token_b_mint, amount)
            return WithdrawalResult(signature="sig", lp_tokens_in=amount, tokens_out=amount, network_fee=5000)

        with patch.object(sim_client, "execute_withdrawal", AsyncMock(side_effect=withdraw)):
            result = await handler.drain(worker_id)

        assert result.lp_tokens_used == 7000
        assert result.lp_tokens_burned == 7000
        assert result.tokens_withdrawn == 7000
        assert result.tokens_burned == 7000
        assert sim_client.burned_amount(lp_mint) == 7000
        assert sim_client.burned_amount(sim_pool.token_b_mint) == 7000


class TestSwapDrain:

    @pytest.mark.asyncio
    async def test_total_burned_is_input_plus_output(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, _ = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.SWAP,
            mint=sim_pool.token_a_mint, holding=3000, swap_direction=SwapDirection.A_TO_B,
        )

        async def swap(wallet_, pool_id, direction, amount, minimum_output, compute_units):
            assert minimum_output == int(amount * 0.9)
            sim_client.set_token_balance(wallet_.public_key, sim_pool.token_b_mint, amount)
            return SwapResult(signature="sig", direction=direction, input_amount=amount, output_amount=amount)

        with patch.object(sim_client, "execute_swap", AsyncMock(side_effect=swap)):
            result = await handler.drain(worker_id)

        assert result.swap_direction == "a_to_b"
        assert result.tokens_swapped_in == 3000
        assert result.tokens_swapped_out == 3000
        assert result.tokens_burned == 6000

    @pytest.mark.asyncio
    async def test_failed_swap_keeps_input_burn(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, _ = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.SWAP,
            mint=sim_pool.token_b_mint, holding=3000, swap_direction=SwapDirection.B_TO_A,
        )

        result = await handler.drain(worker_id)

        assert result.tokens_burned == 3000
        assert not result.operation_successful
        assert result.error_message.startswith("Swap failed")


# ============================================================
# SWEEP / RUNNING WORKERS
# ============================================================

class TestSweep:

    @pytest.mark.asyncio
    async def test_native_swept_to_core_wallet(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, wallet = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.DEPOSIT, mint=sim_pool.token_a_mint, holding=5000
        )
        core_before = (await sim_client.get_or_create_core_wallet()).native_balance

        result = await handler.drain(worker_id)

        assert result.native_swept > 0
        assert result.sweep_error is None
        assert await sim_client.get_native_balance(wallet.public_key) <= 10_000_000
        core_after = (await sim_client.get_or_create_core_wallet()).native_balance
        assert core_after == core_before + result.native_swept

    @pytest.mark.asyncio
    async def test_sweep_failure_does_not_change_outcome(self, handler, sim_client, worker_pool, sim_pool):
        worker_id, _ = await make_worker(
            sim_client, worker_pool, sim_pool, WorkerKind.DEPOSIT, mint=sim_pool.token_a_mint, holding=5000
        )

        with patch.object(sim_client, "transfer_native", AsyncMock(side_effect=RuntimeError("no route"))):
            result = await handler.drain(worker_id)

        assert result.tokens_burned == 5000
        assert result.native_swept == 0
        assert result.sweep_error == "no route"

    @pytest.mark.asyncio
    async def test_running_worker_stopped_first(self, handler, sim_client, worker_pool, sim_pool):
        worker_id = await worker_pool.create(WorkerConfig(
            kind=WorkerKind.DEPOSIT, pool_id=sim_pool.pool_id, initial_amount=1_000_000,
        ))
        await worker_pool.start(worker_id)

        result = await handler.drain(worker_id)

        assert not worker_pool.is_running(worker_id)
        assert (await worker_pool.get_config(worker_id)).status == WorkerStatus.STOPPED
        assert result.tokens_burned == sim_client.burned_amount(sim_pool.token_a_mint)
