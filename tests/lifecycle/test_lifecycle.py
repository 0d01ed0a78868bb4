"""
Tests for the Lifecycle Controller and Engine.

============================================================
PURPOSE
============================================================
- start / stop build and dispose exactly one Engine
- pause / resume drive running workers
- Failed startup ends in ERROR; stop recovers to STOPPED
- Startup routines run in order and unwind on failure
- Health snapshots and transition listeners

============================================================
"""

import pytest

from chain_client.simulated import SimulatedChainClient, SimulatedChainConfig
from core.config import HarnessConfig, RecoveryConfig, WorkerPoolConfig
from core.exceptions import LifecycleError, StartupError
from core.system_state import SystemState
from core.types import WorkerKind, WorkerStatus
from lifecycle.controller import LifecycleController
from lifecycle.engine import Engine
from lifecycle.models import ServiceState
from lifecycle.startup import StartupRoutine, parse_version
from pools.models import PoolRegistryEntry
from pools.normalizer import RatioNormalizer
from storage.json_store import JsonFileStateStore
from workers.models import WorkerConfig


MINT_A = "LifeMintA111111111111111111111111111111111"
MINT_B = "LifeMintB111111111111111111111111111111111"


def fast_config() -> HarnessConfig:
    config = HarnessConfig()
    config.workers = WorkerPoolConfig(
        min_delay_ms=1,
        max_delay_ms=5,
        stop_timeout_seconds=2.0,
        error_backoff_seconds=0.01,
        paused_poll_seconds=0.01,
    )
    config.recovery = RecoveryConfig(poll_interval_seconds=0.01, unknown_retry_delay_seconds=0.01)
    return config


class Harness:
    """Controller wired to one shared simulated chain and JSON store."""

    def __init__(self, tmp_path, client=None, config=None, routines=None):
        self.config = config or fast_config()
        self.client = client or SimulatedChainClient()
        self.store = JsonFileStateStore(str(tmp_path))
        self.system_state = SystemState()
        self.engines = []
        self._routines = routines
        self.controller = LifecycleController(
            self.config,
            system_state=self.system_state,
            engine_factory=self._build,
        )

    def _build(self) -> Engine:
        engine = Engine(
            self.config,
            self.system_state,
            chain_client=self.client,
            store=self.store,
            routines=self._routines,
        )
        self.engines.append(engine)
        return engine

    def create_pool(self, mint_a=MINT_A, mint_b=MINT_B):
        ratio = RatioNormalizer().normalize(mint_a, mint_b, 10 ** 6, 10 ** 6)
        return self.client.create_pool(ratio, 6, 6, initial_liquidity_a=10 ** 15, initial_liquidity_b=10 ** 15)


class RecordingRoutine(StartupRoutine):

    def __init__(self, name, calls, fail=False):
        self.name = name
        self._calls = calls
        self._fail = fail

    async def start(self):
        self._calls.append(f"start:{self.name}")
        if self._fail:
            raise RuntimeError("routine exploded")

    async def stop(self):
        self._calls.append(f"stop:{self.name}")


# ============================================================
# START / STOP
# ============================================================

class TestStartStop:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, tmp_path):
        harness = Harness(tmp_path)
        controller = harness.controller

        await controller.start()
        assert controller.state == ServiceState.STARTED
        assert controller.engine is harness.engines[0]
        assert controller.engine.is_started
        assert harness.system_state.is_started

        await controller.stop()
        assert controller.state == ServiceState.STOPPED
        assert controller.engine is None
        assert harness.system_state.state_name == "stopped"

    @pytest.mark.asyncio
    async def test_stop_twice_is_safe(self, tmp_path):
        controller = Harness(tmp_path).controller
        await controller.start()
        await controller.stop()
        history = len(controller.get_history(limit=100))

        await controller.stop()

        assert controller.state == ServiceState.STOPPED
        assert len(controller.get_history(limit=100)) == history

    @pytest.mark.asyncio
    async def test_start_twice_builds_one_engine(self, tmp_path):
        harness = Harness(tmp_path)
        await harness.controller.start()
        await harness.controller.start()

        assert len(harness.engines) == 1
        await harness.controller.stop()

    @pytest.mark.asyncio
    async def test_restart_builds_fresh_engine(self, tmp_path):
        harness = Harness(tmp_path)
        await harness.controller.start()
        await harness.controller.stop()
        await harness.controller.start()

        assert len(harness.engines) == 2
        assert harness.controller.engine is harness.engines[1]
        assert not harness.engines[0].is_started
        await harness.controller.stop()

    @pytest.mark.asyncio
    async def test_history_records_transitions(self, tmp_path):
        controller = Harness(tmp_path).controller
        await controller.start()
        await controller.stop()

        path = [(t.from_state, t.to_state) for t in controller.get_history(limit=10)]
        assert path == [
            (ServiceState.STOPPED, ServiceState.STARTING),
            (ServiceState.STARTING, ServiceState.STARTED),
            (ServiceState.STARTED, ServiceState.STOPPING),
            (ServiceState.STOPPING, ServiceState.STOPPED),
        ]

    @pytest.mark.asyncio
    async def test_stop_halts_running_workers(self, tmp_path):
        harness = Harness(tmp_path)
        pool = harness.create_pool()
        await harness.controller.start()
        worker_pool = harness.controller.engine.worker_pool
        worker_id = await worker_pool.create(WorkerConfig(
            kind=WorkerKind.DEPOSIT, pool_id=pool.pool_id, initial_amount=1_000_000,
        ))
        await worker_pool.start(worker_id)

        await harness.controller.stop()

        assert not worker_pool.is_running(worker_id)
        stored = await harness.store.load_worker_config(worker_id)
        assert stored.status == WorkerStatus.STOPPED


# ============================================================
# STARTUP FAILURES
# ============================================================

class TestStartupFailures:

    @pytest.mark.asyncio
    async def test_version_too_high(self, tmp_path):
        client = SimulatedChainClient(SimulatedChainConfig(contract_version="0.20.0"))
        harness = Harness(tmp_path, client=client)

        with pytest.raises(StartupError):
            await harness.controller.start()

        assert harness.controller.state == ServiceState.ERROR
        assert harness.controller.engine is None

        await harness.controller.stop()
        assert harness.controller.state == ServiceState.STOPPED

    @pytest.mark.asyncio
    async def test_version_mismatch(self, tmp_path):
        config = fast_config()
        config.chain.expected_contract_version = "0.15.0"
        harness = Harness(tmp_path, config=config)

        with pytest.raises(StartupError) as exc_info:
            await harness.controller.start()

        assert exc_info.value.context["routine"] == "contract_version_check"

    @pytest.mark.asyncio
    async def test_version_unavailable(self, tmp_path):
        client = SimulatedChainClient(SimulatedChainConfig(contract_version=None))
        harness = Harness(tmp_path, client=client)

        with pytest.raises(StartupError):
            await harness.controller.start()

    @pytest.mark.asyncio
    async def test_failed_routine_unwinds_started_ones(self, tmp_path):
        calls = []
        routines = [
            RecordingRoutine("first", calls),
            RecordingRoutine("second", calls, fail=True),
            RecordingRoutine("third", calls),
        ]
        harness = Harness(tmp_path, routines=routines)

        with pytest.raises(StartupError) as exc_info:
            await harness.controller.start()

        assert calls == ["start:first", "start:second", "stop:first"]
        assert exc_info.value.context["routine"] == "second"

    @pytest.mark.asyncio
    async def test_routines_stop_in_reverse(self, tmp_path):
        calls = []
        routines = [RecordingRoutine("first", calls), RecordingRoutine("second", calls)]
        harness = Harness(tmp_path, routines=routines)

        await harness.controller.start()
        await harness.controller.stop()

        assert calls == ["start:first", "start:second", "stop:second", "stop:first"]

    @pytest.mark.asyncio
    async def test_registry_validator_drops_unknown_pools(self, tmp_path):
        harness = Harness(tmp_path)
        pool = harness.create_pool()
        normalizer = RatioNormalizer()
        known = PoolRegistryEntry(
            pool_id=pool.pool_id,
            ratio=normalizer.normalize(MINT_A, MINT_B, 10 ** 6, 10 ** 6),
            token_a_decimals=6,
            token_b_decimals=6,
        )
        gone_ratio = normalizer.normalize("GoneMintA", "GoneMintB", 10 ** 6, 10 ** 6)
        gone = PoolRegistryEntry(
            pool_id=gone_ratio.pool_id,
            ratio=gone_ratio,
            token_a_decimals=6,
            token_b_decimals=6,
        )
        await harness.store.save_pool_registry([known, gone])

        await harness.controller.start()

        entries = await harness.store.load_pool_registry()
        assert [e.pool_id for e in entries] == [pool.pool_id]
        await harness.controller.stop()


class TestParseVersion:

    def test_parse(self):
        assert parse_version("0.16.0") == (0, 16, 0)
        assert parse_version("v1.2") == (1, 2)
        assert parse_version("0.19.9999") > parse_version("0.19.10")

    def test_unparseable(self):
        with pytest.raises(ValueError):
            parse_version("0.x.1")


# ============================================================
# PAUSE / RESUME
# ============================================================

class TestPauseResume:

    @pytest.mark.asyncio
    async def test_pause_and_resume_workers(self, tmp_path):
        harness = Harness(tmp_path)
        pool = harness.create_pool()
        controller = harness.controller
        await controller.start()
        worker_pool = controller.engine.worker_pool
        worker_id = await worker_pool.create(WorkerConfig(
            kind=WorkerKind.DEPOSIT, pool_id=pool.pool_id, initial_amount=1_000_000,
        ))
        await worker_pool.start(worker_id)

        await controller.pause()
        assert controller.state == ServiceState.PAUSED
        assert harness.system_state.is_paused
        assert (await worker_pool.get_config(worker_id)).status == WorkerStatus.PAUSED

        await controller.resume()
        assert controller.state == ServiceState.STARTED
        assert not harness.system_state.is_paused
        assert worker_pool.is_running(worker_id)

        await controller.stop()

    @pytest.mark.asyncio
    async def test_pause_requires_started(self, tmp_path):
        controller = Harness(tmp_path).controller
        with pytest.raises(LifecycleError):
            await controller.pause()

    @pytest.mark.asyncio
    async def test_resume_requires_paused(self, tmp_path):
        controller = Harness(tmp_path).controller
        await controller.start()

        with pytest.raises(LifecycleError):
            await controller.resume()

        assert controller.state == ServiceState.STARTED
        await controller.stop()

    @pytest.mark.asyncio
    async def test_stop_while_paused(self, tmp_path):
        controller = Harness(tmp_path).controller
        await controller.start()
        await controller.pause()

        await controller.stop()

        assert controller.state == ServiceState.STOPPED


# ============================================================
# HEALTH / LISTENERS
# ============================================================

class TestHealthAndListeners:

    @pytest.mark.asyncio
    async def test_health_by_state(self, tmp_path):
        controller = Harness(tmp_path).controller

        stopped = controller.get_health()
        assert stopped.is_healthy
        assert stopped.engine_healthy is None

        await controller.start()
        started = controller.get_health()
        assert started.is_healthy
        assert started.engine_healthy
        assert started.metrics["chain_backend"] == "simulated"
        assert started.metrics["total_workers"] == 0

        await controller.pause()
        paused = controller.get_health()
        assert paused.is_paused
        assert not paused.is_healthy

        await controller.stop()

    @pytest.mark.asyncio
    async def test_health_after_failed_start(self, tmp_path):
        client = SimulatedChainClient(SimulatedChainConfig(contract_version="9.0.0"))
        controller = Harness(tmp_path, client=client).controller
        with pytest.raises(StartupError):
            await controller.start()

        health = controller.get_health()
        assert health.state == ServiceState.ERROR
        assert not health.is_healthy

    @pytest.mark.asyncio
    async def test_listeners_notified(self, tmp_path):
        controller = Harness(tmp_path).controller
        seen = []

        async def record(transition):
            seen.append(transition.to_state)

        async def broken(transition):
            raise RuntimeError("listener bug")

        controller.register_listener(broken)
        controller.register_listener(record)
        await controller.start()
        controller.unregister_listener(record)
        await controller.stop()

        assert seen == [ServiceState.STARTING, ServiceState.STARTED]
