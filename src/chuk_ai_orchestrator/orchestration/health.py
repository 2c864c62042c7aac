# chuk_ai_orchestrator/orchestration/health.py
"""
HealthTracker - per-backend success rate, latency and accuracy.

Every figure is an exponential blend so one slow or failed call nudges the
record instead of resetting it. Updates for the same backend are serialized
by a per-backend asyncio.Lock; reads (selection, snapshots) are lock-free.

Usage::

    tracker = HealthTracker(catalog.backend_ids)
    await tracker.record_success("openai/gpt-4o", "analysis", latency_ms=840)
    await tracker.record_failure("openai/gpt-4o", "analysis")
    tracker.get("openai/gpt-4o").success_rate
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import BaseModel, Field, ValidationError

from chuk_ai_orchestrator.models import CircuitState, HealthRecord, HealthSnapshot, TaskPerformance
from chuk_ai_orchestrator.persistence import StateStore, read_state
from chuk_ai_orchestrator.scheduling import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

HEALTH_STATE_KEY = "model_health"


class HealthConfig(BaseModel):
    """Blend factors and starting values for new health records."""

    success_rate_alpha: float = Field(default=0.25, gt=0.0, le=1.0)
    latency_alpha: float = Field(default=0.5, gt=0.0, le=1.0)
    accuracy_alpha: float = Field(default=0.2, gt=0.0, le=1.0)
    initial_latency_ms: float = Field(default=1000.0, gt=0.0)
    initial_accuracy: float = Field(default=0.85, ge=0.0, le=1.0)


def _blend(current: float, sample: float, alpha: float) -> float:
    return current * (1.0 - alpha) + sample * alpha


class HealthTracker:
    """Owns one HealthRecord per backend."""

    def __init__(
        self,
        backend_ids: Iterable[str] = (),
        config: HealthConfig | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config or HealthConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self._records: dict[str, HealthRecord] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        for backend_id in backend_ids:
            self.get(backend_id)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, backend_id: str) -> HealthRecord:
        """Return the record for ``backend_id``, creating a healthy one on first use."""
        record = self._records.get(backend_id)
        if record is None:
            record = self._new_record(backend_id)
            self._records[backend_id] = record
        return record

    def __contains__(self, backend_id: object) -> bool:
        return backend_id in self._records

    @property
    def records(self) -> dict[str, HealthRecord]:
        return dict(self._records)

    def _new_record(self, backend_id: str) -> HealthRecord:
        return HealthRecord(
            backend_id=backend_id,
            avg_latency_ms=self.config.initial_latency_ms,
            avg_accuracy=self.config.initial_accuracy,
            last_health_check=self.scheduler.now(),
        )

    def _lock(self, backend_id: str) -> asyncio.Lock:
        lock = self._locks.get(backend_id)
        if lock is None:
            lock = self._locks[backend_id] = asyncio.Lock()
        return lock

    def _task(self, record: HealthRecord, task_type: str | None) -> TaskPerformance | None:
        if task_type is None:
            return None
        perf = record.task_performance.get(task_type)
        if perf is None:
            perf = TaskPerformance(
                avg_latency_ms=self.config.initial_latency_ms,
                avg_accuracy=self.config.initial_accuracy,
            )
            record.task_performance[task_type] = perf
        return perf

    # ------------------------------------------------------------------
    # Outcome recording
    # ------------------------------------------------------------------

    async def record_success(self, backend_id: str, task_type: str | None, latency_ms: float) -> HealthRecord:
        """Blend toward success and halve the consecutive-failure counter."""
        cfg = self.config
        latency_ms = max(latency_ms, 1.0)
        async with self._lock(backend_id):
            record = self.get(backend_id)
            now = self.scheduler.now()
            record.total_calls += 1
            record.successful_calls += 1
            record.success_rate = _blend(record.success_rate, 1.0, cfg.success_rate_alpha)
            record.avg_latency_ms = _blend(record.avg_latency_ms, latency_ms, cfg.latency_alpha)
            record.avg_accuracy = _blend(record.avg_accuracy, 1.0, cfg.accuracy_alpha)
            record.consecutive_failures //= 2
            record.last_used = now
            record.last_health_check = now

            perf = self._task(record, task_type)
            if perf is not None:
                perf.calls += 1
                perf.successes += 1
                perf.avg_latency_ms = _blend(perf.avg_latency_ms, latency_ms, cfg.latency_alpha)
                perf.avg_accuracy = _blend(perf.avg_accuracy, 1.0, cfg.accuracy_alpha)

        logger.debug(
            "Health %s: success (%.0fms) rate=%.3f latency=%.0fms",
            backend_id,
            latency_ms,
            record.success_rate,
            record.avg_latency_ms,
        )
        return record

    async def record_failure(self, backend_id: str, task_type: str | None) -> HealthRecord:
        """Blend toward failure and increment the consecutive-failure counter."""
        cfg = self.config
        async with self._lock(backend_id):
            record = self.get(backend_id)
            now = self.scheduler.now()
            record.total_calls += 1
            record.success_rate = _blend(record.success_rate, 0.0, cfg.success_rate_alpha)
            record.avg_accuracy = _blend(record.avg_accuracy, 0.0, cfg.accuracy_alpha)
            record.consecutive_failures += 1
            record.last_used = now
            record.last_health_check = now

            perf = self._task(record, task_type)
            if perf is not None:
                perf.calls += 1
                perf.avg_accuracy = _blend(perf.avg_accuracy, 0.0, cfg.accuracy_alpha)

        logger.debug(
            "Health %s: failure #%d rate=%.3f",
            backend_id,
            record.consecutive_failures,
            record.success_rate,
        )
        return record

    def halve_failures(self, backend_id: str) -> None:
        """Selection side effect: a chosen backend gets half its failure count forgiven."""
        record = self.get(backend_id)
        record.consecutive_failures //= 2

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def snapshot(self, backend_id: str) -> HealthSnapshot:
        record = self.get(backend_id)
        return HealthSnapshot(
            backend_id=backend_id,
            available=record.available,
            circuit_state=CircuitState.CLOSED if record.available else CircuitState.OPEN,
            success_rate=round(record.success_rate, 4),
            avg_latency_ms=round(record.avg_latency_ms, 1),
            total_calls=record.total_calls,
            recent_failures=record.consecutive_failures,
            last_health_check=datetime.fromtimestamp(record.last_health_check, UTC).isoformat(),
        )

    def snapshots(self) -> dict[str, HealthSnapshot]:
        return {backend_id: self.snapshot(backend_id) for backend_id in self._records}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save_to(self, store: StateStore, key: str = HEALTH_STATE_KEY) -> None:
        payload = {backend_id: record.model_dump(mode="json") for backend_id, record in self._records.items()}
        await store.write(key, {"records": payload})
        logger.debug("Saved health for %d backends", len(payload))

    async def load_from(self, store: StateStore, key: str = HEALTH_STATE_KEY) -> int:
        """
        Restore records saved by ``save_to``. Returns the number restored.

        Cooldown timers do not survive a restart, so every restored backend
        comes back available with a cleared failure counter. Entries that
        fail validation are skipped and keep their defaults.
        """
        data = await read_state(store, key)
        if not data:
            return 0

        records = data.get("records")
        if not isinstance(records, dict):
            logger.warning("Ignoring malformed health state '%s'", key)
            return 0

        restored = 0
        for backend_id, raw in records.items():
            try:
                record = HealthRecord.model_validate(raw)
            except ValidationError as e:
                logger.warning("Discarding corrupt health record for %s: %s", backend_id, e)
                continue
            record.available = True
            record.consecutive_failures = 0
            self._records[backend_id] = record
            restored += 1

        logger.info("Restored health for %d backends", restored)
        return restored
