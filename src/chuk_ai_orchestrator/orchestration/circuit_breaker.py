# chuk_ai_orchestrator/orchestration/circuit_breaker.py
"""
CircuitBreaker - takes failing backends out of rotation for a cooldown.

Two states only. A backend opens when its consecutive-failure counter
reaches the threshold or its blended success rate drops to the floor. After
the cooldown it closes unconditionally with a cleared counter; there is no
half-open probe.

At most one cooldown timer is pending per backend: tripping an already-open
backend schedules nothing new.

Usage::

    breaker = CircuitBreaker(tracker, scheduler=scheduler)
    await breaker.record_failure("openai/gpt-4o", "analysis")
    breaker.is_open("openai/gpt-4o")
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.config import DEFAULT_COOLDOWN_SECONDS
from chuk_ai_orchestrator.models import (
    CircuitState,
    HealthRecord,
    OrchestrationEvent,
    OrchestrationEventType,
)
from chuk_ai_orchestrator.scheduling import Scheduler, TimerHandle

from .health import HealthTracker

logger = logging.getLogger(__name__)

EventCallback = Callable[[OrchestrationEvent], None]


class CircuitBreakerConfig(BaseModel):
    failure_threshold: int = Field(default=5, gt=0)
    success_rate_floor: float = Field(default=0.3, ge=0.0, le=1.0)
    cooldown_seconds: float = Field(default=DEFAULT_COOLDOWN_SECONDS, ge=0.0)


class CircuitBreaker:
    """Trips backends on repeated failure and restores them after a cooldown."""

    def __init__(
        self,
        health: HealthTracker,
        config: CircuitBreakerConfig | None = None,
        scheduler: Scheduler | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        self.health = health
        self.config = config or CircuitBreakerConfig()
        self.scheduler = scheduler or health.scheduler
        self.on_event = on_event
        self._timers: dict[str, TimerHandle] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def state(self, backend_id: str) -> CircuitState:
        return CircuitState.CLOSED if self.health.get(backend_id).available else CircuitState.OPEN

    def is_open(self, backend_id: str) -> bool:
        return not self.health.get(backend_id).available

    def open_backends(self) -> set[str]:
        return {backend_id for backend_id, record in self.health.records.items() if not record.available}

    def has_pending_cooldown(self, backend_id: str) -> bool:
        return backend_id in self._timers

    def should_trip(self, record: HealthRecord) -> bool:
        cfg = self.config
        return record.consecutive_failures >= cfg.failure_threshold or record.success_rate <= cfg.success_rate_floor

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def record_failure(self, backend_id: str, task_type: str | None = None) -> bool:
        """Record one failed attempt and trip if a threshold is crossed. Returns True if open."""
        record = await self.health.record_failure(backend_id, task_type)
        if self.should_trip(record):
            self.trip(backend_id)
        return self.is_open(backend_id)

    def trip(self, backend_id: str) -> None:
        """Open the circuit and arm the cooldown unless one is already pending."""
        record = self.health.get(backend_id)
        record.available = False

        if backend_id in self._timers:
            logger.debug("Circuit for %s already open; cooldown pending", backend_id)
            return

        cooldown = self.config.cooldown_seconds
        self._timers[backend_id] = self.scheduler.call_later(cooldown, lambda: self._close(backend_id))
        logger.warning(
            "Circuit opened for %s (failures=%d, success_rate=%.3f); retry in %.0fs",
            backend_id,
            record.consecutive_failures,
            record.success_rate,
            cooldown,
        )
        self._emit(OrchestrationEventType.CIRCUIT_OPENED, backend_id, cooldown_seconds=cooldown)

    def _close(self, backend_id: str) -> None:
        self._timers.pop(backend_id, None)
        record = self.health.get(backend_id)
        record.available = True
        record.consecutive_failures = 0
        logger.info("Circuit closed for %s after cooldown", backend_id)
        self._emit(OrchestrationEventType.CIRCUIT_CLOSED, backend_id)

    def cancel_all(self) -> None:
        """Drop pending cooldowns, leaving open backends open."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def _emit(self, event_type: OrchestrationEventType, backend_id: str, **details) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(OrchestrationEvent(event_type=event_type, backend_id=backend_id, details=details))
        except Exception as e:
            logger.warning("Event callback failed for %s: %s", event_type.value, e)
