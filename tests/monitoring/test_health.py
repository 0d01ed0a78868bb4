"""
Tests for worker health evaluation.
"""

from core.types import WorkerKind, WorkerStatus
from monitoring.health import HealthState, evaluate_worker_health
from workers.models import WorkerConfig


def workers(*statuses):
    return [
        WorkerConfig(kind=WorkerKind.DEPOSIT, pool_id="pool", worker_id=f"deposit_{i}", status=status)
        for i, status in enumerate(statuses)
    ]


class TestEvaluateWorkerHealth:

    def test_no_workers(self):
        summary = evaluate_worker_health([])
        assert summary.state == HealthState.UNKNOWN
        assert summary.total_workers == 0

    def test_healthy(self):
        summary = evaluate_worker_health(workers(WorkerStatus.RUNNING, WorkerStatus.STOPPED, WorkerStatus.ERROR))
        assert summary.state == HealthState.HEALTHY
        assert summary.failed_workers == 1
        assert summary.status_counts == {"running": 1, "stopped": 1, "error": 1}

    def test_exactly_half_failed_is_healthy(self):
        summary = evaluate_worker_health(workers(WorkerStatus.RUNNING, WorkerStatus.ERROR))
        assert summary.state == HealthState.HEALTHY

    def test_majority_failed_is_degraded(self):
        summary = evaluate_worker_health(workers(WorkerStatus.FAILED, WorkerStatus.ERROR, WorkerStatus.RUNNING))
        assert summary.is_degraded
        assert summary.to_dict()["state"] == "degraded"
