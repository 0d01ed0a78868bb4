"""
Tests for Core Operations.

============================================================
PURPOSE
============================================================
End-to-end flows through the caller-facing operations:
register a pool, run a worker, stop it, drain it.

============================================================
"""

import asyncio

import pytest

from chain_client.simulated import SimulatedChainClient
from compute_budget.budgeter import OP_CONSOLIDATE, OP_SWAP, BudgetContext
from core.config import HarnessConfig, RecoveryConfig, WorkerPoolConfig
from core.exceptions import InvalidPoolRatioError, LifecycleError, PoolNotFoundError
from core.system_state import SystemState
from core.types import WorkerKind, WorkerStatus
from lifecycle.controller import LifecycleController
from lifecycle.engine import Engine
from lifecycle.operations import CoreOperations
from pools.normalizer import RatioNormalizer
from storage.json_store import JsonFileStateStore


MINT_LOW = "OpsMintA1111111111111111111111111111111111"
MINT_HIGH = "OpsMintB1111111111111111111111111111111111"


def build(tmp_path):
    config = HarnessConfig(
        workers=WorkerPoolConfig(min_delay_ms=1, max_delay_ms=5, error_backoff_seconds=0.01),
        recovery=RecoveryConfig(poll_interval_seconds=0.01, unknown_retry_delay_seconds=0.01),
    )
    client = SimulatedChainClient()
    store = JsonFileStateStore(str(tmp_path))
    system_state = SystemState()
    controller = LifecycleController(
        config,
        system_state=system_state,
        engine_factory=lambda: Engine(config, system_state, chain_client=client, store=store),
    )
    return controller, CoreOperations(controller), client


def create_chain_pool(client, decimals_low=6, decimals_high=6):
    ratio = RatioNormalizer().normalize(MINT_LOW, MINT_HIGH, 10 ** decimals_low, 10 ** decimals_high)
    return client.create_pool(
        ratio, decimals_low, decimals_high, initial_liquidity_a=10 ** 15, initial_liquidity_b=10 ** 15
    )


class TestWithoutEngine:

    @pytest.mark.asyncio
    async def test_worker_operations_need_engine(self, tmp_path):
        _, operations, _ = build(tmp_path)

        with pytest.raises(LifecycleError):
            await operations.list_workers()
        with pytest.raises(LifecycleError):
            await operations.create_worker(WorkerKind.DEPOSIT, "pool")
        with pytest.raises(LifecycleError):
            await operations.drain("deposit_x")

    def test_pure_operations_work_anytime(self, tmp_path):
        _, operations, _ = build(tmp_path)

        ratio = operations.normalize_pool(MINT_HIGH, MINT_LOW, 10 ** 9, 10 ** 6)
        assert ratio.token_a_mint == MINT_LOW
        assert ratio.ratio_a_numerator == 10 ** 6
        assert ratio.was_swapped

        assert operations.get_compute_budget(OP_SWAP) == 250_000
        assert operations.get_compute_budget(OP_CONSOLIDATE, BudgetContext(pool_count=5)) == 29_000


class TestPools:

    @pytest.mark.asyncio
    async def test_register_pool(self, tmp_path):
        controller, operations, client = build(tmp_path)
        pool = create_chain_pool(client)
        await controller.start()

        entry = await operations.register_pool(MINT_HIGH, MINT_LOW, 10 ** 6, 10 ** 6)
        again = await operations.register_pool(MINT_LOW, MINT_HIGH, 10 ** 6, 10 ** 6)

        assert entry.pool_id == pool.pool_id
        assert again.pool_id == pool.pool_id
        assert [e.pool_id for e in await operations.list_pools()] == [pool.pool_id]
        assert (await operations.get_pool(pool.pool_id)).token_a_decimals == 6
        await controller.stop()

    @pytest.mark.asyncio
    async def test_register_unknown_pool(self, tmp_path):
        controller, operations, _ = build(tmp_path)
        await controller.start()

        with pytest.raises(PoolNotFoundError):
            await operations.register_pool(MINT_LOW, MINT_HIGH, 10 ** 6, 10 ** 6)
        with pytest.raises(PoolNotFoundError):
            await operations.get_pool("missing")
        await controller.stop()

    @pytest.mark.asyncio
    async def test_register_unanchored_ratio(self, tmp_path):
        controller, operations, client = build(tmp_path)
        create_chain_pool(client)
        await controller.start()

        with pytest.raises(InvalidPoolRatioError):
            await operations.register_pool(MINT_LOW, MINT_HIGH, 3, 7)
        await controller.stop()


class TestWorkerFlow:

    @pytest.mark.asyncio
    async def test_deposit_worker_end_to_end(self, tmp_path):
        controller, operations, client = build(tmp_path)
        pool = create_chain_pool(client)
        await controller.start()
        await operations.register_pool(MINT_LOW, MINT_HIGH, 10 ** 6, 10 ** 6)

        worker_id = await operations.create_worker("deposit", pool.pool_id, initial_amount=1_000_000)
        assert worker_id.startswith("deposit_")

        await operations.start_worker(worker_id)
        assert (await operations.get_worker_config(worker_id)).status == WorkerStatus.RUNNING

        for _ in range(300):
            if (await operations.get_worker_statistics(worker_id)).total_operations >= 1:
                break
            await asyncio.sleep(0.01)
        before = await operations.get_worker_statistics(worker_id)
        assert before.total_operations >= 1

        await operations.stop_worker(worker_id)
        after = await operations.get_worker_statistics(worker_id)
        assert (await operations.get_worker_config(worker_id)).status == WorkerStatus.STOPPED
        assert after.successful_operations >= before.successful_operations
        assert after.failed_operations >= before.failed_operations

        result = await operations.drain(worker_id)
        assert result.worker_id == worker_id
        assert result.tokens_burned > 0

        await operations.delete_worker(worker_id)
        assert await operations.list_workers() == []
        await controller.stop()

    @pytest.mark.asyncio
    async def test_create_rejected_while_paused(self, tmp_path):
        controller, operations, client = build(tmp_path)
        pool = create_chain_pool(client)
        await controller.start()
        await controller.pause()

        with pytest.raises(LifecycleError):
            await operations.create_worker(WorkerKind.DEPOSIT, pool.pool_id)
        await controller.stop()

    @pytest.mark.asyncio
    async def test_force_stop_all(self, tmp_path):
        controller, operations, client = build(tmp_path)
        pool = create_chain_pool(client)
        await controller.start()
        ids = [
            await operations.create_worker(WorkerKind.SWAP, pool.pool_id, swap_direction="a_to_b",
                                           initial_amount=1_000_000),
            await operations.create_worker(WorkerKind.WITHDRAWAL, pool.pool_id, token_side="b",
                                           initial_amount=1_000_000),
        ]
        for worker_id in ids:
            await operations.start_worker(worker_id)

        stopped = await operations.force_stop_all_workers()

        assert sorted(stopped) == sorted(ids)
        for config in await operations.list_workers():
            assert config.status == WorkerStatus.STOPPED
        await controller.stop()
