"""
Core Module Package.

This package contains the core infrastructure components
that all other modules depend on.

Components:
- config: Dataclass configuration, loaded from STRESS_* env vars
- system_state: Shared single-writer paused/started flag
- types: Worker kind and status enums
- exceptions: Custom exception hierarchy
- constants: Harness-wide constants
"""

from .config import (
    ChainConfig,
    DrainConfig,
    HarnessConfig,
    RecoveryConfig,
    StorageConfig,
    WorkerPoolConfig,
)
from .exceptions import (
    ConfigurationError,
    HarnessException,
    InvalidPoolRatioError,
    LifecycleError,
    PoolError,
    PoolNotFoundError,
    RecordNotFoundError,
    Severity,
    ShutdownError,
    StartupError,
    StorageError,
    WorkerConfigurationError,
    WorkerError,
    WorkerNotFoundError,
    WorkerStateError,
)
from .system_state import SystemState
from .types import WorkerKind, WorkerStatus


__all__ = [
    # Config
    "HarnessConfig",
    "WorkerPoolConfig",
    "RecoveryConfig",
    "DrainConfig",
    "ChainConfig",
    "StorageConfig",
    # State
    "SystemState",
    "WorkerKind",
    "WorkerStatus",
    # Exceptions
    "Severity",
    "HarnessException",
    "ConfigurationError",
    "WorkerError",
    "WorkerNotFoundError",
    "WorkerStateError",
    "WorkerConfigurationError",
    "PoolError",
    "InvalidPoolRatioError",
    "PoolNotFoundError",
    "LifecycleError",
    "StartupError",
    "ShutdownError",
    "StorageError",
    "RecordNotFoundError",
]
