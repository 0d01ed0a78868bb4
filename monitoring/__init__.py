"""
Monitoring Package.

Aggregate health of the worker fleet.
"""

from .health import FAILED_STATUSES, HealthState, WorkerHealthSummary, evaluate_worker_health


__all__ = [
    "HealthState",
    "WorkerHealthSummary",
    "evaluate_worker_health",
    "FAILED_STATUSES",
]
