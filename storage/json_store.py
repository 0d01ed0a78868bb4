"""
Storage - JSON File State Store.

============================================================
LAYOUT
============================================================
<data_dir>/workers.json     worker_id -> WorkerConfig (with key)
<data_dir>/statistics.json  worker_id -> WorkerStatistics
<data_dir>/errors.json      worker_id -> [WorkerError, ...]
<data_dir>/pools.json       [PoolRegistryEntry, ...]

Every write replaces the whole file through a temp file and
os.replace, so a crash never leaves a half-written file.

============================================================
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from core.exceptions import RecordNotFoundError, StorageError
from pools.models import PoolRegistryEntry
from workers.models import WorkerConfig, WorkerError, WorkerStatistics

from .base import StateStore


logger = logging.getLogger(__name__)

MAX_ERRORS_PER_WORKER = 1_000


class JsonFileStateStore(StateStore):
    """State store backed by JSON files in one directory."""

    WORKERS_FILE = "workers.json"
    STATISTICS_FILE = "statistics.json"
    ERRORS_FILE = "errors.json"
    POOLS_FILE = "pools.json"

    def __init__(self, data_dir: str):
        self._data_dir = Path(data_dir)
        self._lock = asyncio.Lock()
        self._cache: Dict[str, Any] = {}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # --------------------------------------------------------
    # WORKER CONFIG
    # --------------------------------------------------------

    async def save_worker_config(self, config: WorkerConfig) -> None:
        async with self._lock:
            workers = self._read(self.WORKERS_FILE, {})
            workers[config.worker_id] = config.to_dict(include_private_key=True)
            self._write(self.WORKERS_FILE, workers)

    async def load_worker_config(self, worker_id: str) -> WorkerConfig:
        async with self._lock:
            data = self._read(self.WORKERS_FILE, {}).get(worker_id)
        if data is None:
            raise RecordNotFoundError("WorkerConfig", worker_id)
        return WorkerConfig.from_dict(data)

    async def load_all_workers(self) -> List[WorkerConfig]:
        async with self._lock:
            workers = self._read(self.WORKERS_FILE, {})
        return [WorkerConfig.from_dict(data) for data in workers.values()]

    async def delete_worker(self, worker_id: str) -> None:
        async with self._lock:
            for filename in (self.WORKERS_FILE, self.STATISTICS_FILE, self.ERRORS_FILE):
                records = self._read(filename, {})
                if records.pop(worker_id, None) is not None:
                    self._write(filename, records)
        logger.info(f"Deleted worker records | worker_id={worker_id}")

    # --------------------------------------------------------
    # STATISTICS / ERRORS
    # --------------------------------------------------------

    async def save_worker_statistics(self, worker_id: str, statistics: WorkerStatistics) -> None:
        async with self._lock:
            records = self._read(self.STATISTICS_FILE, {})
            records[worker_id] = statistics.to_dict()
            self._write(self.STATISTICS_FILE, records)

    async def load_worker_statistics(self, worker_id: str) -> WorkerStatistics:
        async with self._lock:
            data = self._read(self.STATISTICS_FILE, {}).get(worker_id)
        if data is None:
            raise RecordNotFoundError("WorkerStatistics", worker_id)
        return WorkerStatistics.from_dict(data)

    async def add_worker_error(self, worker_id: str, error: WorkerError) -> None:
        async with self._lock:
            records = self._read(self.ERRORS_FILE, {})
            errors = records.setdefault(worker_id, [])
            errors.append(error.to_dict())
            if len(errors) > MAX_ERRORS_PER_WORKER:
                records[worker_id] = errors[-MAX_ERRORS_PER_WORKER:]
            self._write(self.ERRORS_FILE, records)

    async def load_worker_errors(self, worker_id: str) -> List[WorkerError]:
        async with self._lock:
            errors = self._read(self.ERRORS_FILE, {}).get(worker_id, [])
        return [WorkerError.from_dict(e) for e in errors]

    # --------------------------------------------------------
    # POOL REGISTRY
    # --------------------------------------------------------

    async def load_pool_registry(self) -> List[PoolRegistryEntry]:
        async with self._lock:
            entries = self._read(self.POOLS_FILE, [])
        return [PoolRegistryEntry.from_dict(e) for e in entries]

    async def save_pool_registry(self, entries: List[PoolRegistryEntry]) -> None:
        async with self._lock:
            self._write(self.POOLS_FILE, [e.to_dict() for e in entries])

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    def _read(self, filename: str, default: Any) -> Any:
        """Return the cached document, loading it from disk on first use."""
        if filename in self._cache:
            return self._cache[filename]

        path = self._data_dir / filename
        if not path.exists():
            document = default
        else:
            try:
                with open(path, "r", encoding="utf-8") as f:
                    document = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise StorageError(
                    f"Cannot read {path}: {e}",
                    operation="read",
                    cause=e,
                )
        self._cache[filename] = document
        return document

    def _write(self, filename: str, document: Any) -> None:
        path = self._data_dir / filename
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"State write failed | path={path} | error={e}")
            raise StorageError(f"Cannot write {path}: {e}", operation="write", cause=e)
        self._cache[filename] = document


__all__ = ["JsonFileStateStore"]
