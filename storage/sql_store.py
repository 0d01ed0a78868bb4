"""
Storage - SQL State Store.

============================================================
PURPOSE
============================================================
StateStore backed by the SQLAlchemy asyncio extension. Plain
URLs are mapped to their async drivers:

- sqlite://      -> sqlite+aiosqlite://
- postgresql://  -> postgresql+asyncpg://

SQLite is used for local runs and tests. SQLite allows one
writer per file, so its sessions are serialized in-process.

============================================================
TRANSACTIONS
============================================================
Every public method runs in one AsyncSession scope:
- Commits when the block completes
- Rolls back and raises StorageError on any database error

Tables are created on first use.

============================================================
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.exceptions import RecordNotFoundError, StorageError
from core.types import WorkerKind, WorkerStatus
from pools.models import PoolRatioConfig, PoolRegistryEntry, SwapDirection, TokenSide
from workers.models import WorkerConfig, WorkerError, WorkerStatistics

from .base import StateStore
from .orm import (
    Base,
    PoolRegistryRecord,
    WorkerConfigRecord,
    WorkerErrorRecord,
    WorkerStatisticsRecord,
)


logger = logging.getLogger(__name__)

ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
}


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_async_url(database_url: str) -> str:
    """Swap a plain driver name for its asyncio driver."""
    url = make_url(database_url)
    driver = ASYNC_DRIVERS.get(url.drivername)
    if driver is None:
        return database_url
    return url.set(drivername=driver).render_as_string(hide_password=False)


class SqlStateStore(StateStore):
    """State store over a SQLAlchemy async engine."""

    def __init__(self, database_url: str, echo: bool = False):
        url = make_url(database_url)
        if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_async_engine(to_async_url(database_url), echo=echo, pool_pre_ping=True)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()
        self._serialize_sessions = url.get_backend_name() == "sqlite"
        self._session_lock = asyncio.Lock()
        logger.info(f"SQL state store ready | backend={url.get_backend_name()}")

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            async with self._engine.begin() as connection:
                await connection.run_sync(Base.metadata.create_all)
            self._schema_ready = True

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            await self._ensure_schema()
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot create tables: {e}", operation=operation, cause=e)

        if self._serialize_sessions:
            await self._session_lock.acquire()
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database error, rolling back | operation={operation} | error={e}")
            await session.rollback()
            raise StorageError(
                f"Database error during {operation}: {e}",
                operation=operation,
                cause=e,
            )
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
            if self._serialize_sessions:
                self._session_lock.release()

    # --------------------------------------------------------
    # WORKER CONFIG
    # --------------------------------------------------------

    async def save_worker_config(self, config: WorkerConfig) -> None:
        async with self._session("save_worker_config") as session:
            record = await session.get(WorkerConfigRecord, config.worker_id)
            if record is None:
                record = WorkerConfigRecord(worker_id=config.worker_id)
                session.add(record)
            record.kind = config.kind.value
            record.pool_id = config.pool_id
            record.token_side = config.token_side.value
            record.swap_direction = config.swap_direction.value if config.swap_direction else None
            record.initial_amount = config.initial_amount
            record.auto_refill = config.auto_refill
            record.share_output = config.share_output
            record.status = config.status.value
            record.worker_created_at = config.created_at
            record.last_operation_at = config.last_operation_at
            record.public_key = config.public_key
            record.private_key = config.private_key

    async def load_worker_config(self, worker_id: str) -> WorkerConfig:
        async with self._session("load_worker_config") as session:
            record = await session.get(WorkerConfigRecord, worker_id)
            if record is None:
                raise RecordNotFoundError("WorkerConfig", worker_id)
            return self._to_config(record)

    async def load_all_workers(self) -> List[WorkerConfig]:
        async with self._session("load_all_workers") as session:
            records = (await session.scalars(
                select(WorkerConfigRecord).order_by(WorkerConfigRecord.worker_created_at)
            )).all()
            return [self._to_config(r) for r in records]

    async def delete_worker(self, worker_id: str) -> None:
        async with self._session("delete_worker") as session:
            await session.execute(delete(WorkerErrorRecord).where(WorkerErrorRecord.worker_id == worker_id))
            await session.execute(
                delete(WorkerStatisticsRecord).where(WorkerStatisticsRecord.worker_id == worker_id)
            )
            await session.execute(delete(WorkerConfigRecord).where(WorkerConfigRecord.worker_id == worker_id))
        logger.info(f"Deleted worker records | worker_id={worker_id}")

    # --------------------------------------------------------
    # STATISTICS / ERRORS
    # --------------------------------------------------------

    async def save_worker_statistics(self, worker_id: str, statistics: WorkerStatistics) -> None:
        async with self._session("save_worker_statistics") as session:
            record = await session.get(WorkerStatisticsRecord, worker_id)
            if record is None:
                record = WorkerStatisticsRecord(worker_id=worker_id)
                session.add(record)
            record.successful_operations = statistics.successful_operations
            record.failed_operations = statistics.failed_operations
            record.total_volume_processed = statistics.total_volume_processed
            record.total_fees_paid = statistics.total_fees_paid
            record.last_operation_at = statistics.last_operation_at
            record.last_error = statistics.last_error
            record.recent_errors = [e.to_dict() for e in statistics.recent_errors]

    async def load_worker_statistics(self, worker_id: str) -> WorkerStatistics:
        async with self._session("load_worker_statistics") as session:
            record = await session.get(WorkerStatisticsRecord, worker_id)
            if record is None:
                raise RecordNotFoundError("WorkerStatistics", worker_id)
            return WorkerStatistics(
                successful_operations=record.successful_operations,
                failed_operations=record.failed_operations,
                total_volume_processed=record.total_volume_processed,
                total_fees_paid=record.total_fees_paid,
                last_operation_at=_aware(record.last_operation_at),
                last_error=record.last_error,
                recent_errors=[WorkerError.from_dict(e) for e in record.recent_errors or []],
            )

    async def add_worker_error(self, worker_id: str, error: WorkerError) -> None:
        async with self._session("add_worker_error") as session:
            session.add(
                WorkerErrorRecord(
                    worker_id=worker_id,
                    message=error.message,
                    operation=error.operation,
                    code=error.code,
                    occurred_at=error.timestamp,
                )
            )

    async def load_worker_errors(self, worker_id: str) -> List[WorkerError]:
        async with self._session("load_worker_errors") as session:
            records = (await session.scalars(
                select(WorkerErrorRecord)
                .where(WorkerErrorRecord.worker_id == worker_id)
                .order_by(WorkerErrorRecord.occurred_at, WorkerErrorRecord.id)
            )).all()
            return [
                WorkerError(
                    message=r.message,
                    operation=r.operation,
                    code=r.code,
                    timestamp=_aware(r.occurred_at),
                )
                for r in records
            ]

    # --------------------------------------------------------
    # POOL REGISTRY
    # --------------------------------------------------------

    async def load_pool_registry(self) -> List[PoolRegistryEntry]:
        async with self._session("load_pool_registry") as session:
            records = (await session.scalars(
                select(PoolRegistryRecord).order_by(PoolRegistryRecord.position)
            )).all()
            return [
                PoolRegistryEntry(
                    pool_id=r.pool_id,
                    ratio=PoolRatioConfig.from_dict(r.ratio),
                    token_a_decimals=r.token_a_decimals,
                    token_b_decimals=r.token_b_decimals,
                )
                for r in records
            ]

    async def save_pool_registry(self, entries: List[PoolRegistryEntry]) -> None:
        async with self._session("save_pool_registry") as session:
            await session.execute(delete(PoolRegistryRecord))
            for position, entry in enumerate(entries):
                session.add(
                    PoolRegistryRecord(
                        pool_id=entry.pool_id,
                        ratio=entry.ratio.to_dict(),
                        token_a_decimals=entry.token_a_decimals,
                        token_b_decimals=entry.token_b_decimals,
                        position=position,
                    )
                )

    async def close(self) -> None:
        await self._engine.dispose()

    # --------------------------------------------------------
    # MAPPING
    # --------------------------------------------------------

    @staticmethod
    def _to_config(record: WorkerConfigRecord) -> WorkerConfig:
        return WorkerConfig(
            worker_id=record.worker_id,
            kind=WorkerKind(record.kind),
            pool_id=record.pool_id,
            token_side=TokenSide(record.token_side),
            swap_direction=SwapDirection(record.swap_direction) if record.swap_direction else None,
            initial_amount=record.initial_amount,
            auto_refill=record.auto_refill,
            share_output=record.share_output,
            status=WorkerStatus(record.status),
            created_at=_aware(record.worker_created_at),
            last_operation_at=_aware(record.last_operation_at),
            public_key=record.public_key,
            private_key=record.private_key,
        )


__all__ = ["SqlStateStore", "to_async_url"]
