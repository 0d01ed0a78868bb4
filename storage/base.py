"""
Storage - State Store Interface.

============================================================
RESPONSIBILITY
============================================================
Persistence contract for worker state and the pool registry.

- One config record and one statistics record per worker id
- Append-only error log per worker
- One pool registry (pool ids with their canonical ratio)

Backends: JsonFileStateStore, SqlStateStore.

============================================================
"""

from abc import ABC, abstractmethod
from typing import List

from pools.models import PoolRegistryEntry
from workers.models import WorkerConfig, WorkerError, WorkerStatistics


class StateStore(ABC):
    """Abstract async state store."""

    # --------------------------------------------------------
    # WORKER CONFIG
    # --------------------------------------------------------

    @abstractmethod
    async def save_worker_config(self, config: WorkerConfig) -> None:
        pass

    @abstractmethod
    async def load_worker_config(self, worker_id: str) -> WorkerConfig:
        """
        Raises:
            RecordNotFoundError: If no config exists for the id
        """
        pass

    @abstractmethod
    async def load_all_workers(self) -> List[WorkerConfig]:
        pass

    @abstractmethod
    async def delete_worker(self, worker_id: str) -> None:
        """Delete config, statistics and error log of a worker."""
        pass

    # --------------------------------------------------------
    # STATISTICS / ERRORS
    # --------------------------------------------------------

    @abstractmethod
    async def save_worker_statistics(self, worker_id: str, statistics: WorkerStatistics) -> None:
        pass

    @abstractmethod
    async def load_worker_statistics(self, worker_id: str) -> WorkerStatistics:
        """
        Raises:
            RecordNotFoundError: If no statistics exist for the id
        """
        pass

    @abstractmethod
    async def add_worker_error(self, worker_id: str, error: WorkerError) -> None:
        pass

    @abstractmethod
    async def load_worker_errors(self, worker_id: str) -> List[WorkerError]:
        pass

    # --------------------------------------------------------
    # POOL REGISTRY
    # --------------------------------------------------------

    @abstractmethod
    async def load_pool_registry(self) -> List[PoolRegistryEntry]:
        pass

    @abstractmethod
    async def save_pool_registry(self, entries: List[PoolRegistryEntry]) -> None:
        pass

    async def close(self) -> None:
        return None


__all__ = ["StateStore"]
