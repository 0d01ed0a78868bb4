"""
Lifecycle - Models.

============================================================
STATE MACHINE
============================================================
STOPPED  -> STARTING -> STARTED
STARTED  -> PAUSING  -> PAUSED
PAUSED   -> RESUMING -> STARTED
STARTED/PAUSED/ERROR -> STOPPING -> STOPPED
STARTING/PAUSING/RESUMING/STOPPING -> ERROR

Transient states (STARTING, PAUSING, RESUMING, STOPPING) guard
against re-entry; no transition skips its transient state.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Set


class ServiceState(Enum):
    """Process-wide lifecycle state."""

    STOPPED = "stopped"
    STARTING = "starting"
    STARTED = "started"
    PAUSING = "pausing"
    PAUSED = "paused"
    RESUMING = "resuming"
    STOPPING = "stopping"
    ERROR = "error"

    @property
    def is_transient(self) -> bool:
        return self in TRANSIENT_STATES


TRANSIENT_STATES = frozenset({
    ServiceState.STARTING,
    ServiceState.PAUSING,
    ServiceState.RESUMING,
    ServiceState.STOPPING,
})


VALID_TRANSITIONS: Dict[ServiceState, Set[ServiceState]] = {
    ServiceState.STOPPED: {ServiceState.STARTING},
    ServiceState.STARTING: {ServiceState.STARTED, ServiceState.ERROR},
    ServiceState.STARTED: {ServiceState.PAUSING, ServiceState.STOPPING},
    ServiceState.PAUSING: {ServiceState.PAUSED, ServiceState.ERROR},
    ServiceState.PAUSED: {ServiceState.RESUMING, ServiceState.STOPPING},
    ServiceState.RESUMING: {ServiceState.STARTED, ServiceState.ERROR},
    ServiceState.STOPPING: {ServiceState.STOPPED, ServiceState.ERROR},
    ServiceState.ERROR: {ServiceState.STOPPING},
}


@dataclass
class StateTransition:
    """Record of a lifecycle transition."""

    from_state: ServiceState
    to_state: ServiceState
    reason: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class HealthStatus:
    """Non-blocking health snapshot of the whole service."""

    state: ServiceState
    is_healthy: bool
    is_paused: bool
    engine_healthy: Optional[bool] = None
    message: str = ""
    metrics: Dict[str, Any] = field(default_factory=dict)
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "is_healthy": self.is_healthy,
            "is_paused": self.is_paused,
            "engine_healthy": self.engine_healthy,
            "message": self.message,
            "metrics": dict(self.metrics),
            "checked_at": self.checked_at.isoformat(),
        }


__all__ = [
    "ServiceState",
    "TRANSIENT_STATES",
    "VALID_TRANSITIONS",
    "StateTransition",
    "HealthStatus",
]
