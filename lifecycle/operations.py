"""
Lifecycle - Core Operations.

============================================================
RESPONSIBILITY
============================================================
The operations an outer layer (CLI, RPC server, tests) calls.
No transport awareness: typed arguments in, models out,
typed exceptions propagate to the caller.

Worker and drain operations need a started Engine; pool
normalization and compute budgets work in any state.

============================================================
"""

import logging
from typing import List, Optional, Union

from compute_budget.budgeter import BudgetContext, ResourceBudgeter
from core.exceptions import LifecycleError, PoolNotFoundError
from core.types import WorkerKind
from drain.models import DrainResult
from pools.models import PoolRatioConfig, PoolRegistryEntry, SwapDirection, TokenSide
from pools.normalizer import RatioNormalizer
from workers.models import WorkerConfig, WorkerStatistics

from .controller import LifecycleController
from .engine import Engine


logger = logging.getLogger(__name__)


class CoreOperations:
    """Caller-facing facade over the LifecycleController."""

    def __init__(self, controller: LifecycleController):
        self._controller = controller
        self._normalizer = RatioNormalizer()
        self._budgeter = ResourceBudgeter()

    def _engine(self, operation: str) -> Engine:
        engine = self._controller.engine
        if engine is None:
            raise LifecycleError(
                f"Cannot {operation}: service is {self._controller.state.value}",
                context={"operation": operation},
            )
        return engine

    # --------------------------------------------------------
    # WORKERS
    # --------------------------------------------------------

    async def create_worker(
        self,
        kind: Union[WorkerKind, str],
        pool_id: str,
        token_side: Union[TokenSide, str] = TokenSide.A,
        swap_direction: Optional[Union[SwapDirection, str]] = None,
        initial_amount: int = 0,
        auto_refill: bool = False,
        share_output: bool = False,
    ) -> str:
        engine = self._engine("create worker")
        self._controller.system_state.ensure_operational("create_worker")
        config = WorkerConfig(
            kind=WorkerKind(kind),
            pool_id=pool_id,
            token_side=TokenSide(token_side),
            swap_direction=SwapDirection(swap_direction) if swap_direction else None,
            initial_amount=initial_amount,
            auto_refill=auto_refill,
            share_output=share_output,
        )
        return await engine.worker_pool.create(config)

    async def start_worker(self, worker_id: str) -> None:
        engine = self._engine("start worker")
        self._controller.system_state.ensure_operational("start_worker")
        await engine.worker_pool.start(worker_id)

    async def stop_worker(self, worker_id: str) -> None:
        await self._engine("stop worker").worker_pool.stop(worker_id)

    async def force_stop_all_workers(self) -> List[str]:
        return await self._engine("stop workers").worker_pool.force_stop_all()

    async def delete_worker(self, worker_id: str) -> None:
        await self._engine("delete worker").worker_pool.delete(worker_id)

    async def list_workers(self) -> List[WorkerConfig]:
        return await self._engine("list workers").worker_pool.list_all()

    async def get_worker_config(self, worker_id: str) -> WorkerConfig:
        return await self._engine("read worker").worker_pool.get_config(worker_id)

    async def get_worker_statistics(self, worker_id: str) -> WorkerStatistics:
        return await self._engine("read worker statistics").worker_pool.get_statistics(worker_id)

    async def drain(self, worker_id: str) -> DrainResult:
        return await self._engine("drain worker").drain_handler.drain(worker_id)

    # --------------------------------------------------------
    # POOLS / BUDGETS
    # --------------------------------------------------------

    def normalize_pool(self, mint_a: str, mint_b: str, ratio_a: int, ratio_b: int) -> PoolRatioConfig:
        return self._normalizer.normalize(mint_a, mint_b, ratio_a, ratio_b)

    def get_compute_budget(self, operation: str, context: Optional[BudgetContext] = None) -> int:
        return self._budgeter.get_budget(operation, context)

    async def register_pool(
        self,
        mint_a: str,
        mint_b: str,
        ratio_a: int,
        ratio_b: int,
        decimals_a: Optional[int] = None,
        decimals_b: Optional[int] = None,
    ) -> PoolRegistryEntry:
        """
        Normalize, validate and add a pool to the registry.

        Decimals are given for the caller's (mint_a, mint_b) order.

        Raises:
            InvalidPoolRatioError: Neither side anchored to one whole token
            PoolNotFoundError: The chain does not know the pool
        """
        engine = self._engine("register pool")
        ratio = self._normalizer.normalize(mint_a, mint_b, ratio_a, ratio_b)
        if ratio.was_swapped:
            decimals_a, decimals_b = decimals_b, decimals_a

        pool = await engine.chain_client.get_pool_state(ratio.pool_id)
        if decimals_a is None:
            decimals_a = pool.token_a_decimals
        if decimals_b is None:
            decimals_b = pool.token_b_decimals
        self._normalizer.validate(ratio, decimals_a, decimals_b)

        entry = PoolRegistryEntry(
            pool_id=ratio.pool_id,
            ratio=ratio,
            token_a_decimals=decimals_a,
            token_b_decimals=decimals_b,
        )
        entries = await engine.store.load_pool_registry()
        if any(e.pool_id == entry.pool_id for e in entries):
            logger.info(f"Pool already registered | pool_id={entry.pool_id}")
            return entry

        entries.append(entry)
        await engine.store.save_pool_registry(entries)
        logger.info(f"Pool registered | pool_id={entry.pool_id} | ratio={ratio.ratio_display}")
        return entry

    async def list_pools(self) -> List[PoolRegistryEntry]:
        return await self._engine("list pools").store.load_pool_registry()

    async def get_pool(self, pool_id: str) -> PoolRegistryEntry:
        for entry in await self.list_pools():
            if entry.pool_id == pool_id:
                return entry
        raise PoolNotFoundError(pool_id)


__all__ = ["CoreOperations"]
