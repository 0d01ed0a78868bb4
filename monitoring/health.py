"""
Monitoring - Worker Health.

============================================================
HEALTH STATES
============================================================
- HEALTHY: No worker is failed, or too few to matter
- DEGRADED: More than half of all workers are FAILED/ERROR
- UNKNOWN: No workers to judge

A worker's status reflects its lifecycle only; recorded
operation failures never make a worker unhealthy here.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable

from core.types import WorkerStatus
from workers.models import WorkerConfig


FAILED_STATUSES = frozenset({WorkerStatus.FAILED, WorkerStatus.ERROR})


class HealthState(Enum):
    """Aggregate health state."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


@dataclass
class WorkerHealthSummary:
    """Aggregate worker health at one point in time."""

    state: HealthState
    total_workers: int
    failed_workers: int
    status_counts: Dict[str, int] = field(default_factory=dict)
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_degraded(self) -> bool:
        return self.state == HealthState.DEGRADED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "total_workers": self.total_workers,
            "failed_workers": self.failed_workers,
            "status_counts": dict(self.status_counts),
            "checked_at": self.checked_at.isoformat(),
        }


def evaluate_worker_health(workers: Iterable[WorkerConfig]) -> WorkerHealthSummary:
    """DEGRADED when more than half of all workers are FAILED or ERROR."""
    counts: Dict[str, int] = {}
    total = 0
    failed = 0
    for config in workers:
        total += 1
        counts[config.status.value] = counts.get(config.status.value, 0) + 1
        if config.status in FAILED_STATUSES:
            failed += 1

    if total == 0:
        state = HealthState.UNKNOWN
    elif failed * 2 > total:
        state = HealthState.DEGRADED
    else:
        state = HealthState.HEALTHY

    return WorkerHealthSummary(
        state=state,
        total_workers=total,
        failed_workers=failed,
        status_counts=counts,
    )


__all__ = [
    "HealthState",
    "WorkerHealthSummary",
    "evaluate_worker_health",
    "FAILED_STATUSES",
]
