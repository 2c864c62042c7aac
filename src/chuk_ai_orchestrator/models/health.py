# chuk_ai_orchestrator/models/health.py
"""Per-backend mutable health state and its read-only snapshot."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.base_models import DictCompatModel

from .enums import CircuitState


class TaskPerformance(BaseModel):
    """Outcome history of one backend for one task type."""

    calls: int = 0
    successes: int = 0
    avg_latency_ms: float = 1000.0
    avg_accuracy: float = 0.85


class HealthRecord(BaseModel):
    """
    Mutable health state for one backend.

    ``success_rate``, ``avg_latency_ms`` and the accuracy figures are
    exponentially blended; see HealthConfig for the blend factors. Timestamps
    are seconds on the owning tracker's clock, not wall-clock datetimes, so
    tests can drive them with a manual scheduler.
    """

    backend_id: str
    available: bool = True
    success_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    avg_latency_ms: float = Field(default=1000.0, gt=0.0)
    avg_accuracy: float = Field(default=0.85, ge=0.0, le=1.0)
    consecutive_failures: int = Field(default=0, ge=0)
    total_calls: int = 0
    successful_calls: int = 0
    last_health_check: float = 0.0
    last_used: float | None = None
    task_performance: dict[str, TaskPerformance] = Field(default_factory=dict)

    def task_accuracy(self, task_type: str) -> float:
        """Blended accuracy for a task type, 0.0 if the backend never ran it."""
        perf = self.task_performance.get(task_type)
        return perf.avg_accuracy if perf else 0.0


class HealthSnapshot(DictCompatModel):
    """Point-in-time view of a HealthRecord for status reporting."""

    backend_id: str
    available: bool
    circuit_state: CircuitState
    success_rate: float
    avg_latency_ms: float
    total_calls: int
    recent_failures: int
    last_health_check: str
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
