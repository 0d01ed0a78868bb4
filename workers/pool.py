"""
Workers - Worker Pool.

============================================================
RESPONSIBILITY
============================================================
Creates, starts, stops and tracks stress-test workers.

- One asyncio task per running worker
- One cancellation handle per running worker (CancellationRegistry)
- Sole writer of WorkerConfig.status

============================================================
STATUS FLOW
============================================================
CREATED -> RUNNING -> STOPPED -> RUNNING -> ...
RUNNING -> PAUSED   (engine pause)  -> RUNNING (engine resume)
RUNNING -> ERROR    (loop task crashed)

============================================================
"""

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Dict, List, Optional

from chain_client.base import ChainClient
from chain_client.models import Wallet
from compute_budget.budgeter import ResourceBudgeter
from contract_errors.recovery import RecoveryEngine
from core.config import WorkerPoolConfig
from core.exceptions import (
    PoolNotFoundError,
    RecordNotFoundError,
    WorkerConfigurationError,
    WorkerNotFoundError,
    WorkerStateError,
)
from core.system_state import SystemState
from core.types import WorkerKind, WorkerStatus

from .cancellation import CancellationRegistry
from .loop import WorkerLoop, seed_position
from .models import WorkerConfig, WorkerStatistics

if TYPE_CHECKING:
    from storage.base import StateStore


logger = logging.getLogger(__name__)


class WorkerPool:
    """
    Manager of all workers.

    Usage:
        pool = WorkerPool(client, store, system_state)
        await pool.load()
        worker_id = await pool.create(WorkerConfig(kind=WorkerKind.DEPOSIT, pool_id=pid))
        await pool.start(worker_id)
        ...
        await pool.force_stop_all()
    """

    def __init__(
        self,
        chain_client: ChainClient,
        store: "StateStore",
        system_state: SystemState,
        recovery: Optional[RecoveryEngine] = None,
        budgeter: Optional[ResourceBudgeter] = None,
        config: Optional[WorkerPoolConfig] = None,
    ) -> None:
        self._client = chain_client
        self._store = store
        self._system_state = system_state
        self._recovery = recovery or RecoveryEngine(chain_client)
        self._budgeter = budgeter or ResourceBudgeter()
        self._config = config or WorkerPoolConfig()

        self._workers: Dict[str, WorkerConfig] = {}
        self._loops: Dict[str, WorkerLoop] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._registry = CancellationRegistry()
        self._worker_locks: Dict[str, asyncio.Lock] = {}
        self._core_wallet: Optional[Wallet] = None

        self._logger = logger

    # --------------------------------------------------------
    # SETUP
    # --------------------------------------------------------

    async def load(self) -> int:
        """
        Load persisted workers.

        Workers persisted as running belonged to a previous process;
        they come back STOPPED. PAUSED workers stay PAUSED so a
        resume picks them up.
        """
        configs = await self._store.load_all_workers()
        for config in configs:
            if config.status in (WorkerStatus.RUNNING, WorkerStatus.STOPPING):
                config.status = WorkerStatus.STOPPED
                await self._store.save_worker_config(config)
            self._workers[config.worker_id] = config

        self._logger.info(f"Loaded workers | count={len(configs)}")
        return len(configs)

    def set_core_wallet(self, wallet: Wallet) -> None:
        """Operational wallet used to fund worker wallets."""
        self._core_wallet = wallet

    # --------------------------------------------------------
    # CREATE / DELETE
    # --------------------------------------------------------

    async def create(self, config: WorkerConfig) -> str:
        """
        Register a new worker.

        Raises:
            WorkerConfigurationError: Unknown pool or missing swap direction
        """
        if config.kind == WorkerKind.SWAP and config.swap_direction is None:
            raise WorkerConfigurationError("Swap workers require a swap direction")
        if config.initial_amount < 0:
            raise WorkerConfigurationError(
                f"initial_amount must not be negative: {config.initial_amount}"
            )
        await self._require_pool(config.pool_id)

        config.worker_id = f"{config.kind.value}_{uuid.uuid4().hex}"
        config.status = WorkerStatus.CREATED

        wallet = await self._client.generate_wallet()
        config.public_key = wallet.public_key
        config.private_key = wallet.private_key

        await self._store.save_worker_config(config)
        await self._store.save_worker_statistics(config.worker_id, WorkerStatistics())
        self._workers[config.worker_id] = config

        self._logger.info(
            f"Worker created | worker_id={config.worker_id} | pool_id={config.pool_id} | "
            f"initial_amount={config.initial_amount} | wallet={config.public_key}"
        )
        return config.worker_id

    async def delete(self, worker_id: str) -> None:
        """Stop a worker and delete its records."""
        await self.get_config(worker_id)
        await self.stop(worker_id)
        await self._store.delete_worker(worker_id)
        self._workers.pop(worker_id, None)
        self._worker_locks.pop(worker_id, None)
        self._logger.info(f"Worker deleted | worker_id={worker_id}")

    # --------------------------------------------------------
    # START
    # --------------------------------------------------------

    async def start(self, worker_id: str) -> None:
        """
        Launch the worker loop.

        Start, stop and pause of one worker are serialized; a second
        concurrent start sees the first one's loop and fails.

        Raises:
            WorkerNotFoundError: Unknown worker id
            WorkerStateError: Worker is already running
            WorkerConfigurationError: The worker's pool no longer exists
        """
        async with self._lock_for(worker_id):
            await self._start(worker_id)

    async def _start(self, worker_id: str) -> None:
        config = await self.get_config(worker_id)
        if config.status == WorkerStatus.RUNNING or worker_id in self._registry:
            raise WorkerStateError(
                f"Worker {worker_id} is already running",
                worker_id=worker_id,
                status=config.status.value,
            )

        pool = await self._require_pool(config.pool_id)
        wallet = await self._restore_wallet(config)
        await self._fund_native(config, wallet)

        try:
            await seed_position(self._client, wallet, config, pool, self._budgeter)
        except Exception as e:
            self._logger.warning(f"Position seeding failed | worker_id={worker_id} | error={e}")

        try:
            statistics = await self._store.load_worker_statistics(worker_id)
        except RecordNotFoundError:
            statistics = WorkerStatistics()

        handle = await self._registry.register(worker_id)
        loop = WorkerLoop(
            config=config,
            wallet=wallet,
            cancel=handle,
            client=self._client,
            store=self._store,
            recovery=self._recovery,
            budgeter=self._budgeter,
            system_state=self._system_state,
            statistics=statistics,
            pool_config=self._config,
            peer_resolver=self._find_peer_address,
        )
        self._loops[worker_id] = loop
        await self._set_status(config, WorkerStatus.RUNNING)
        self._tasks[worker_id] = asyncio.create_task(
            self._supervise(loop), name=f"worker-{worker_id}"
        )
        self._logger.info(f"Worker started | worker_id={worker_id}")

    async def _supervise(self, loop: WorkerLoop) -> None:
        """Task body: run the loop, mark ERROR if it crashes."""
        try:
            await loop.run()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._logger.critical(
                f"Worker loop crashed | worker_id={loop.worker_id} | error={e}",
                exc_info=True,
            )
            config = self._workers.get(loop.worker_id)
            if config is not None:
                await self._registry.cancel(loop.worker_id)
                await self._set_status(config, WorkerStatus.ERROR)

    async def _restore_wallet(self, config: WorkerConfig) -> Wallet:
        if not config.has_wallet:
            wallet = await self._client.generate_wallet()
            config.public_key = wallet.public_key
            config.private_key = wallet.private_key
            await self._store.save_worker_config(config)
            self._logger.warning(f"Worker had no wallet, generated one | worker_id={config.worker_id}")
            return wallet

        wallet = await self._client.restore_wallet(config.private_key)
        if wallet.public_key != config.public_key:
            raise WorkerConfigurationError(
                "Restored wallet does not match the stored public key",
                worker_id=config.worker_id,
            )
        return wallet

    async def _fund_native(self, config: WorkerConfig, wallet: Wallet) -> None:
        """Top up the worker's native balance from the operational wallet."""
        try:
            balance = await self._client.get_native_balance(wallet.public_key)
            if balance >= self._config.min_native_balance:
                return
            if self._core_wallet is None:
                self._core_wallet = (await self._client.get_or_create_core_wallet()).wallet
            await self._client.transfer_native(
                self._core_wallet, wallet.public_key, self._config.native_funding_amount
            )
            self._logger.info(
                f"Funded worker wallet | worker_id={config.worker_id} | "
                f"lamports={self._config.native_funding_amount}"
            )
        except Exception as e:
            self._logger.warning(f"Native funding failed | worker_id={config.worker_id} | error={e}")

    # --------------------------------------------------------
    # STOP / PAUSE
    # --------------------------------------------------------

    async def stop(self, worker_id: str) -> None:
        """
        Stop a worker.

        Returns once the loop has observed cancellation, or after
        stop_timeout_seconds, past which the task is cancelled.
        """
        config = await self.get_config(worker_id)
        async with self._lock_for(worker_id):
            await self._halt(config, WorkerStatus.STOPPED)

    async def pause(self, worker_id: str) -> None:
        """Stop a running worker, leaving it in PAUSED status."""
        config = await self.get_config(worker_id)
        async with self._lock_for(worker_id):
            if config.status != WorkerStatus.RUNNING:
                return
            await self._halt(config, WorkerStatus.PAUSED)

    async def pause_all_running(self) -> List[str]:
        paused = []
        for worker_id in self.running_ids():
            await self.pause(worker_id)
            paused.append(worker_id)
        if paused:
            self._logger.info(f"Paused running workers | count={len(paused)}")
        return paused

    async def resume_paused(self) -> List[str]:
        resumed = []
        for config in list(self._workers.values()):
            if config.status != WorkerStatus.PAUSED:
                continue
            try:
                await self.start(config.worker_id)
                resumed.append(config.worker_id)
            except Exception as e:
                self._logger.error(f"Resume failed | worker_id={config.worker_id} | error={e}")
        if resumed:
            self._logger.info(f"Resumed paused workers | count={len(resumed)}")
        return resumed

    async def force_stop_all(self) -> List[str]:
        """
        Signal every running worker at once and wait for the loops.

        Used on whole-system shutdown: no worker outlives the engine.
        """
        cancelled = await self._registry.cancel_all()
        tasks = []
        for worker_id in cancelled:
            config = self._workers.get(worker_id)
            if config is not None:
                await self._set_status(config, WorkerStatus.STOPPED)
            task = self._tasks.pop(worker_id, None)
            if task is not None:
                tasks.append(task)
        await self._await_tasks(tasks)
        for worker_id in cancelled:
            await self._detach_loop(worker_id)

        self._logger.info(f"Force-stopped all workers | count={len(cancelled)}")
        return cancelled

    async def _halt(self, config: WorkerConfig, final_status: WorkerStatus) -> None:
        worker_id = config.worker_id
        await self._registry.cancel(worker_id)
        task = self._tasks.pop(worker_id, None)

        if config.status != final_status:
            await self._set_status(config, final_status)

        if task is not None:
            await self._await_tasks([task])
        await self._detach_loop(worker_id)
        self._logger.info(f"Worker halted | worker_id={worker_id} | status={final_status.value}")

    async def _await_tasks(self, tasks: List[asyncio.Task]) -> None:
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=self._config.stop_timeout_seconds)
        for task in pending:
            self._logger.warning(f"Worker loop did not stop in time, cancelling | task={task.get_name()}")
            task.cancel()
        if pending:
            await asyncio.wait(pending)

    async def _detach_loop(self, worker_id: str) -> None:
        """Drop the finished loop, carrying its last operation time onto the config."""
        loop = self._loops.pop(worker_id, None)
        config = self._workers.get(worker_id)
        if loop is None or config is None:
            return
        last_operation_at = loop.statistics.last_operation_at
        if last_operation_at is not None and last_operation_at != config.last_operation_at:
            config.last_operation_at = last_operation_at
            await self._store.save_worker_config(config)

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    async def get_config(self, worker_id: str) -> WorkerConfig:
        """
        Raises:
            WorkerNotFoundError: Unknown worker id
        """
        config = self._workers.get(worker_id)
        if config is None:
            try:
                config = await self._store.load_worker_config(worker_id)
            except RecordNotFoundError:
                raise WorkerNotFoundError(worker_id)
            self._workers[worker_id] = config
        return config

    async def list_all(self) -> List[WorkerConfig]:
        return sorted(self._workers.values(), key=lambda c: c.created_at)

    async def get_statistics(self, worker_id: str) -> WorkerStatistics:
        """Live counters for a running worker, stored counters otherwise."""
        await self.get_config(worker_id)
        loop = self._loops.get(worker_id)
        if loop is not None:
            return loop.statistics
        try:
            return await self._store.load_worker_statistics(worker_id)
        except RecordNotFoundError:
            return WorkerStatistics()

    async def get_wallet(self, worker_id: str) -> Wallet:
        config = await self.get_config(worker_id)
        return await self._restore_wallet(config)

    def snapshot(self) -> List[WorkerConfig]:
        """Cached configs, without touching the store."""
        return list(self._workers.values())

    def running_ids(self) -> List[str]:
        return [
            worker_id
            for worker_id, config in self._workers.items()
            if config.status == WorkerStatus.RUNNING
        ]

    def is_running(self, worker_id: str) -> bool:
        return worker_id in self._registry

    def status_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for config in self._workers.values():
            counts[config.status.value] = counts.get(config.status.value, 0) + 1
        return counts

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    def _lock_for(self, worker_id: str) -> asyncio.Lock:
        lock = self._worker_locks.get(worker_id)
        if lock is None:
            lock = asyncio.Lock()
            self._worker_locks[worker_id] = lock
        return lock

    async def _set_status(self, config: WorkerConfig, status: WorkerStatus) -> None:
        config.status = status
        await self._store.save_worker_config(config)

    async def _require_pool(self, pool_id: str):
        try:
            return await self._client.get_pool_state(pool_id)
        except PoolNotFoundError:
            raise WorkerConfigurationError(f"Pool {pool_id} does not exist")

    async def _find_peer_address(self, config: WorkerConfig) -> Optional[str]:
        """
        Wallet of a running worker that consumes this worker's output.

        deposit -> withdrawal (LP tokens), withdrawal -> deposit
        (tokens), swap -> swap in the opposite direction.
        """
        if config.kind == WorkerKind.DEPOSIT:
            wanted_kind = WorkerKind.WITHDRAWAL
        elif config.kind == WorkerKind.WITHDRAWAL:
            wanted_kind = WorkerKind.DEPOSIT
        else:
            wanted_kind = WorkerKind.SWAP

        for other in self._workers.values():
            if other.worker_id == config.worker_id or other.pool_id != config.pool_id:
                continue
            if other.kind != wanted_kind or other.status != WorkerStatus.RUNNING:
                continue
            if wanted_kind == WorkerKind.SWAP:
                if other.swap_direction == config.swap_direction:
                    continue
            elif other.token_side != config.token_side:
                continue
            return other.public_key
        return None


__all__ = ["WorkerPool"]
