"""
Core Module - Shared Types.

============================================================
RESPONSIBILITY
============================================================
Enumerations shared by the worker pool, the recovery engine,
the drain handler and storage.

============================================================
"""

from enum import Enum


class WorkerKind(Enum):
    """What a worker does on every loop iteration."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    SWAP = "swap"


class WorkerStatus(Enum):
    """
    Worker lifecycle stage.

    Reflects lifecycle only; a worker with many failed
    operations stays RUNNING until it is stopped.
    """

    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    PAUSED = "paused"
    STOPPING = "stopping"
    FAILED = "failed"
    ERROR = "error"


__all__ = ["WorkerKind", "WorkerStatus"]
