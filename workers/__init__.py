"""
Workers Package.

Stress-test workers: configuration models, cooperative
cancellation, the per-worker operation loop and the pool
that manages them.
"""

from core.types import WorkerKind, WorkerStatus

from .cancellation import CancellationHandle, CancellationRegistry
from .loop import OperationOutcome, WorkerLoop, seed_position
from .models import (
    OPERATION_BY_KIND,
    WorkerConfig,
    WorkerContext,
    WorkerError,
    WorkerStatistics,
)
from .pool import WorkerPool


__all__ = [
    "WorkerKind",
    "WorkerStatus",
    "WorkerConfig",
    "WorkerContext",
    "WorkerError",
    "WorkerStatistics",
    "OPERATION_BY_KIND",
    "CancellationHandle",
    "CancellationRegistry",
    "WorkerLoop",
    "OperationOutcome",
    "seed_position",
    "WorkerPool",
]
