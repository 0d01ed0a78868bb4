"""
Storage - ORM Models.

============================================================
PURPOSE
============================================================
SQLAlchemy declarative models for the SQL state store.

============================================================
TABLES
============================================================
- worker_configs:    one row per worker (wallet key included)
- worker_statistics: one row per worker, counters + recent errors
- worker_errors:     append-only error log
- pool_registry:     one row per registered pool

============================================================
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for the harness tables."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Record creation timestamp (UTC)"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last update timestamp (UTC)"
    )


class WorkerConfigRecord(Base, TimestampMixin):
    """Persisted WorkerConfig."""

    __tablename__ = "worker_configs"

    worker_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    pool_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    token_side: Mapped[str] = mapped_column(String(1), nullable=False)
    swap_direction: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    initial_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    auto_refill: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    share_output: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    worker_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_operation_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    public_key: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    private_key: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)


class WorkerStatisticsRecord(Base, TimestampMixin):
    """Persisted WorkerStatistics."""

    __tablename__ = "worker_statistics"

    worker_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("worker_configs.worker_id", ondelete="CASCADE"),
        primary_key=True,
    )
    successful_operations: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    failed_operations: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_volume_processed: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_fees_paid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_operation_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recent_errors: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)


class WorkerErrorRecord(Base):
    """One entry of a worker's error log."""

    __tablename__ = "worker_errors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    worker_id: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    operation: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_worker_errors_worker_time", "worker_id", "occurred_at"),
    )


class PoolRegistryRecord(Base, TimestampMixin):
    """One registered pool."""

    __tablename__ = "pool_registry"

    pool_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    ratio: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    token_a_decimals: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    token_b_decimals: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = [
    "Base",
    "TimestampMixin",
    "WorkerConfigRecord",
    "WorkerStatisticsRecord",
    "WorkerErrorRecord",
    "PoolRegistryRecord",
]
