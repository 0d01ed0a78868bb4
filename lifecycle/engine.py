"""
Lifecycle - Engine.

============================================================
RESPONSIBILITY
============================================================
Owns every runtime component of one started service:

- ChainClient and StateStore (built from config unless injected)
- RatioNormalizer, ResourceBudgeter, RecoveryEngine
- WorkerPool and DrainHandler
- Startup routines, started in order, stopped in reverse

One Engine lives from one controller start to the matching
stop. It is never restarted; the controller builds a fresh one.

============================================================
"""

import logging
from typing import Any, Dict, List, Optional

from chain_client import create_chain_client
from chain_client.base import ChainClient
from compute_budget.budgeter import ResourceBudgeter
from contract_errors.recovery import RecoveryEngine
from core.config import HarnessConfig
from core.exceptions import StartupError
from core.system_state import SystemState
from drain.handler import DrainHandler
from monitoring.health import WorkerHealthSummary, evaluate_worker_health
from pools.normalizer import RatioNormalizer
from storage import create_state_store
from storage.base import StateStore
from workers.pool import WorkerPool

from .startup import (
    ContractVersionCheck,
    CoreWalletInitializer,
    PoolRegistryValidator,
    StartupRoutine,
)


logger = logging.getLogger(__name__)


class Engine:
    """Runtime container built by the LifecycleController."""

    def __init__(
        self,
        config: HarnessConfig,
        system_state: SystemState,
        chain_client: Optional[ChainClient] = None,
        store: Optional[StateStore] = None,
        routines: Optional[List[StartupRoutine]] = None,
    ) -> None:
        self._config = config
        self._system_state = system_state

        self._owns_client = chain_client is None
        self._owns_store = store is None
        self.chain_client = chain_client or create_chain_client(config.chain)
        self.store = store or create_state_store(config.storage)

        self.normalizer = RatioNormalizer()
        self.budgeter = ResourceBudgeter()
        self.recovery = RecoveryEngine(self.chain_client, config.recovery)
        self.worker_pool = WorkerPool(
            self.chain_client,
            self.store,
            system_state,
            recovery=self.recovery,
            budgeter=self.budgeter,
            config=config.workers,
        )
        self.drain_handler = DrainHandler(
            self.chain_client,
            self.worker_pool,
            budgeter=self.budgeter,
            config=config.drain,
        )

        self._wallet_routine = CoreWalletInitializer(self.chain_client, config.chain)
        self._routines: List[StartupRoutine] = routines if routines is not None else [
            ContractVersionCheck(self.chain_client, config.chain),
            self._wallet_routine,
            PoolRegistryValidator(self.chain_client, self.store),
        ]
        self._started_routines: List[StartupRoutine] = []
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    # --------------------------------------------------------
    # START / STOP
    # --------------------------------------------------------

    async def start(self) -> None:
        """
        Run startup routines, then load persisted workers.

        Raises:
            StartupError: A routine failed; routines already started
                are stopped again before raising
        """
        logger.info("=== ENGINE STARTUP ===")
        for routine in self._routines:
            try:
                await routine.start()
            except Exception as e:
                logger.error(f"Startup routine failed | routine={routine.name} | error={e}")
                await self._stop_routines()
                if isinstance(e, StartupError):
                    raise
                raise StartupError(
                    f"Startup routine {routine.name} failed: {e}",
                    routine=routine.name,
                    cause=e,
                )
            self._started_routines.append(routine)

        if self._wallet_routine.core_wallet is not None:
            self.worker_pool.set_core_wallet(self._wallet_routine.core_wallet.wallet)

        loaded = await self.worker_pool.load()
        self._started = True
        logger.info(f"=== ENGINE STARTED | routines={len(self._started_routines)} | workers={loaded} ===")

    async def stop(self) -> None:
        """Stop all workers, then the startup routines in reverse order."""
        logger.info("=== ENGINE SHUTDOWN ===")
        await self.worker_pool.force_stop_all()
        await self._stop_routines()
        self._started = False

    async def dispose(self) -> None:
        """Release owned resources. Safe to call more than once."""
        if self._owns_client:
            try:
                await self.chain_client.close()
            except Exception as e:
                logger.error(f"Chain client close failed | error={e}")
        if self._owns_store:
            try:
                await self.store.close()
            except Exception as e:
                logger.error(f"State store close failed | error={e}")

    async def _stop_routines(self) -> None:
        while self._started_routines:
            routine = self._started_routines.pop()
            try:
                await routine.stop()
            except Exception as e:
                logger.error(f"Startup routine stop failed | routine={routine.name} | error={e}")

    # --------------------------------------------------------
    # HEALTH
    # --------------------------------------------------------

    def worker_health(self) -> WorkerHealthSummary:
        return evaluate_worker_health(self.worker_pool.snapshot())

    def is_healthy(self) -> bool:
        return self._started and not self.worker_health().is_degraded

    def get_metrics(self) -> Dict[str, Any]:
        summary = self.worker_health()
        return {
            "started": self._started,
            "chain_backend": self.chain_client.name,
            "total_workers": summary.total_workers,
            "running_workers": len(self.worker_pool.running_ids()),
            "workers_by_status": summary.status_counts,
            "worker_health": summary.state.value,
        }


__all__ = ["Engine"]
