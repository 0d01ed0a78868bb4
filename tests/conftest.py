"""
Shared test fixtures.

============================================================
PURPOSE
============================================================
- A simulated chain with one 1:1 pool
- Worker pool and recovery timings shrunk to milliseconds
- A SystemState already published as started

============================================================
"""

import pytest

from chain_client.simulated import SimulatedChainClient
from core.config import RecoveryConfig, WorkerPoolConfig
from core.system_state import SystemState
from pools.normalizer import RatioNormalizer


MINT_A = "AlphaMint1111111111111111111111111111111111"
MINT_B = "BravoMint1111111111111111111111111111111111"
POOL_LIQUIDITY = 10 ** 15


@pytest.fixture
def sim_client():
    return SimulatedChainClient()


@pytest.fixture
def sim_pool(sim_client):
    ratio = RatioNormalizer().normalize(MINT_A, MINT_B, 10 ** 6, 10 ** 6)
    return sim_client.create_pool(
        ratio, 6, 6, initial_liquidity_a=POOL_LIQUIDITY, initial_liquidity_b=POOL_LIQUIDITY
    )


@pytest.fixture
def fast_pool_config():
    return WorkerPoolConfig(
        min_delay_ms=1,
        max_delay_ms=5,
        stop_timeout_seconds=2.0,
        error_backoff_seconds=0.01,
        paused_poll_seconds=0.01,
    )


@pytest.fixture
def fast_recovery_config():
    return RecoveryConfig(
        poll_interval_seconds=0.01,
        pool_pause_max_polls=5,
        system_pause_max_polls=5,
        swaps_pause_max_polls=5,
        insufficient_funds_delay_seconds=0.01,
        insufficient_liquidity_delay_seconds=0.01,
        slippage_delay_seconds=0.01,
        unknown_retry_delay_seconds=0.01,
    )


@pytest.fixture
def started_state():
    state = SystemState()
    state.update("started", paused=False)
    return state
