"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the stress harness.

- Provides clear exception hierarchy
- Enables specific error handling at module seams
- Supports severity for alerting
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
HarnessException (base)
├── ConfigurationError
├── WorkerError
│   ├── WorkerNotFoundError
│   ├── WorkerStateError
│   └── WorkerConfigurationError
├── PoolError
│   ├── InvalidPoolRatioError
│   └── PoolNotFoundError
├── LifecycleError
│   ├── StartupError
│   └── ShutdownError
└── StorageError
    └── RecordNotFoundError

Chain client failures live in chain_client.exceptions; they are
classified by contract_errors, never raised through the worker loop.

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for alerting."""

    LOW = "low"
    """Minor issue, informational."""

    MEDIUM = "medium"
    """Moderate issue, requires attention."""

    HIGH = "high"
    """Serious issue, may impact operations."""

    CRITICAL = "critical"
    """Critical issue, requires immediate action."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class HarnessException(Exception):
    """
    Base exception for all stress harness errors.

    All exceptions carry:
    - severity: for alerting
    - context: for debugging
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/storage."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(HarnessException):
    """Error in harness configuration."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, context=context, **kwargs)


# ============================================================
# WORKER ERRORS
# ============================================================

class WorkerError(HarnessException):
    """Base class for worker pool errors."""

    def __init__(
        self,
        message: str,
        worker_id: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if worker_id:
            context["worker_id"] = worker_id
        super().__init__(message, context=context, **kwargs)
        self.worker_id = worker_id


class WorkerNotFoundError(WorkerError):
    """No worker is registered under the given id."""

    default_severity = Severity.LOW

    def __init__(self, worker_id: str):
        super().__init__(f"Worker {worker_id} not found", worker_id=worker_id)


class WorkerStateError(WorkerError):
    """Operation is not valid for the worker's current status."""

    def __init__(
        self,
        message: str,
        worker_id: Optional[str] = None,
        status: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if status:
            context["status"] = status
        super().__init__(message, worker_id=worker_id, context=context, **kwargs)


class WorkerConfigurationError(WorkerError):
    """Worker configuration is invalid (bad pool, missing direction, ...)."""

    default_severity = Severity.HIGH


# ============================================================
# POOL ERRORS
# ============================================================

class PoolError(HarnessException):
    """Base class for pool errors."""

    def __init__(
        self,
        message: str,
        pool_id: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if pool_id:
            context["pool_id"] = pool_id
        super().__init__(message, context=context, **kwargs)
        self.pool_id = pool_id


class InvalidPoolRatioError(PoolError):
    """Neither side of the pool ratio is anchored to one whole token."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        expected_a: Optional[int] = None,
        expected_b: Optional[int] = None,
        actual_a: Optional[int] = None,
        actual_b: Optional[int] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        context.update({
            "expected_a": expected_a,
            "expected_b": expected_b,
            "actual_a": actual_a,
            "actual_b": actual_b,
        })
        super().__init__(message, context=context, **kwargs)


class PoolNotFoundError(PoolError):
    """Pool does not exist on chain or in the registry."""

    def __init__(self, pool_id: str):
        super().__init__(f"Pool {pool_id} not found", pool_id=pool_id)


# ============================================================
# LIFECYCLE ERRORS
# ============================================================

class LifecycleError(HarnessException):
    """Base class for lifecycle errors."""

    default_severity = Severity.HIGH


class StartupError(LifecycleError):
    """Engine or one of its startup routines failed to start."""

    default_severity = Severity.CRITICAL

    def __init__(
        self,
        message: str,
        routine: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if routine:
            context["routine"] = routine
        super().__init__(message, context=context, **kwargs)


class ShutdownError(LifecycleError):
    """Engine failed to shut down cleanly."""


# ============================================================
# STORAGE ERRORS
# ============================================================

class StorageError(HarnessException):
    """Base class for state store errors."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context, **kwargs)


class RecordNotFoundError(StorageError):
    """Requested record does not exist in the store."""

    default_severity = Severity.LOW

    def __init__(self, record_type: str, key: str):
        super().__init__(
            f"{record_type} {key} not found",
            operation="load",
            context={"record_type": record_type, "key": key},
        )
        self.record_type = record_type
        self.key = key


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
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
