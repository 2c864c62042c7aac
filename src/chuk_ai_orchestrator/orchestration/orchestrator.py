# chuk_ai_orchestrator/orchestration/orchestrator.py
"""
Orchestrator - the single entry point for completions.

One logical call:

1. validate the prompt;
2. render prior thread context in front of it (if a thread id is given);
3. consult the response cache;
4. ask the Selector for a backend (straight to fallback if its circuit is open);
5. invoke it under a timeout;
6. on success update health, cache the text and record the exchange;
   on failure update health/breaker and walk the FallbackChain.

Only OrchestrationError subclasses cross this boundary. Backend failures
are absorbed and retried; the caller sees one aggregated error when every
attempt has failed.

Usage::

    orchestrator = Orchestrator(OpenRouterBackend())
    text = await orchestrator.call("Design a rate limiter", "backend", thread_id="t1")
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.config import DEFAULT_CALL_TIMEOUT_SECONDS, DEFAULT_MAX_PROMPT_LENGTH
from chuk_ai_orchestrator.exceptions import (
    BackendUnavailableError,
    ExhaustedFallbackError,
    OrchestrationError,
    TransportError,
    ValidationError,
)
from chuk_ai_orchestrator.memory.maintenance import MaintenanceLoop
from chuk_ai_orchestrator.memory.store import MemoryStore
from chuk_ai_orchestrator.models import (
    AttemptRecord,
    CallOptions,
    CallOutcome,
    ConsensusResult,
    EnhancedContext,
    GlobalMemoryContext,
    HealthSnapshot,
    OrchestrationEvent,
    OrchestrationEventType,
    SystemStatus,
)
from chuk_ai_orchestrator.persistence import StateStore
from chuk_ai_orchestrator.scheduling import AsyncioScheduler, Scheduler
from chuk_ai_orchestrator.validation import validate_identifier, validate_prompt

from .backend import InferenceBackend
from .cache import ResponseCache
from .catalog import ModelCatalog
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .fallback import DEFAULT_MAX_FALLBACKS, FallbackChain
from .health import HealthConfig, HealthTracker
from .metrics import PerformanceMonitor
from .selector import Selector, SelectorConfig

logger = logging.getLogger(__name__)

EventCallback = Callable[[OrchestrationEvent], None]


class OrchestratorConfig(BaseModel):
    max_prompt_length: int = Field(default=DEFAULT_MAX_PROMPT_LENGTH, gt=0)
    max_fallbacks: int = Field(default=DEFAULT_MAX_FALLBACKS, ge=0)
    call_timeout_seconds: float = Field(default=DEFAULT_CALL_TIMEOUT_SECONDS, gt=0.0)
    default_task_type: str = "main"
    consensus_task_types: tuple[str, ...] = ("main", "analysis", "review")


class Orchestrator:
    """Routes prompts to backends and keeps conversation memory."""

    def __init__(
        self,
        backend: InferenceBackend,
        catalog: ModelCatalog | None = None,
        *,
        config: OrchestratorConfig | None = None,
        selector_config: SelectorConfig | None = None,
        breaker_config: CircuitBreakerConfig | None = None,
        health_config: HealthConfig | None = None,
        memory: MemoryStore | None = None,
        cache: ResponseCache | None = None,
        use_cache: bool = True,
        monitor: PerformanceMonitor | None = None,
        scheduler: Scheduler | None = None,
        on_event: EventCallback | None = None,
    ) -> None:
        self.backend = backend
        self.config = config or OrchestratorConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.catalog = catalog or ModelCatalog()
        self.on_event = on_event

        self.health = HealthTracker(self.catalog.backend_ids, health_config, self.scheduler)
        self.selector = Selector(self.catalog, self.health, selector_config)
        self.breaker = CircuitBreaker(self.health, breaker_config, self.scheduler, on_event=self._emit_event)
        self.fallback = FallbackChain(self.catalog, self.health, self.config.max_fallbacks)

        self.memory = memory or MemoryStore()
        if cache is None and use_cache:
            cache = ResponseCache(scheduler=self.scheduler)
        self.cache = cache
        self.monitor = monitor or PerformanceMonitor()
        self.maintenance = MaintenanceLoop(self.memory, self.cache)

    # =========================================================================
    # Single call
    # =========================================================================

    async def call(
        self,
        prompt: str,
        task_type: str | None = None,
        options: CallOptions | None = None,
        thread_id: str | None = None,
    ) -> str:
        """
        Return the completion text for ``prompt``.

        Raises:
            ValidationError: empty or oversized prompt, blank thread id.
            BackendUnavailableError: the chosen backend is open and fallback
                is disabled or has nothing left to try.
            ExhaustedFallbackError: every attempted backend failed.
        """
        options = options or CallOptions()
        task_type = validate_identifier(task_type or self.config.default_task_type, "task_type")
        prompt = validate_prompt(prompt, self.config.max_prompt_length)
        if thread_id is not None:
            thread_id = validate_identifier(thread_id, "thread_id")

        with self.monitor.timer(f"call_{self.catalog.known_task_type(task_type)}"):
            return await self._call(prompt, task_type, options, thread_id)

    async def _call(self, prompt: str, task_type: str, options: CallOptions, thread_id: str | None) -> str:
        effective = self._build_prompt(prompt, thread_id, options)

        cache_key = None
        if self.cache is not None and options.use_cache and self.cache.should_cache(prompt, options):
            cache_key = self.cache.make_key(effective, task_type, options)
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for %s call", task_type)
                self._emit(OrchestrationEventType.CACHE_HIT, task_type=task_type)
                await self._record_exchange(thread_id, prompt, cached, None)
                return cached

        primary = self.selector.select(task_type, options.complexity, prompt)
        attempts: list[AttemptRecord] = []
        last_error: OrchestrationError | None = None

        if self.breaker.is_open(primary):
            logger.warning("Circuit open for %s; going straight to fallback", primary)
            if not options.allow_fallback:
                raise BackendUnavailableError(primary, task_type)
        else:
            try:
                text = await self._attempt(primary, task_type, effective, options, attempts, fallback=False)
            except TransportError as e:
                last_error = e
            else:
                return await self._finish(text, primary, task_type, prompt, options, thread_id, cache_key)

            if not options.allow_fallback:
                self._log_exhausted(task_type, attempts)
                raise ExhaustedFallbackError(task_type, [a.backend_id for a in attempts], last_error)

        exclude = {primary} | {a.backend_id for a in attempts} | self.breaker.open_backends()
        chain = self.fallback.next(exclude)
        if chain:
            self._emit(OrchestrationEventType.FALLBACK_ENGAGED, task_type=task_type, chain=chain)

        for backend_id in chain:
            logger.info("Attempting fallback %s for %s", backend_id, task_type)
            try:
                text = await self._attempt(backend_id, task_type, effective, options, attempts, fallback=True)
            except TransportError as e:
                last_error = e
                continue
            logger.info("Fallback %s succeeded for %s", backend_id, task_type)
            return await self._finish(text, backend_id, task_type, prompt, options, thread_id, cache_key)

        if not attempts:
            raise BackendUnavailableError(primary, task_type)
        self._log_exhausted(task_type, attempts)
        raise ExhaustedFallbackError(task_type, [a.backend_id for a in attempts], last_error)

    async def _attempt(
        self,
        backend_id: str,
        task_type: str,
        prompt: str,
        options: CallOptions,
        attempts: list[AttemptRecord],
        *,
        fallback: bool,
    ) -> str:
        """One timed invocation. Raises TransportError after recording the failure."""
        timeout = options.timeout_seconds or self.config.call_timeout_seconds
        self._emit(OrchestrationEventType.ATTEMPT_STARTED, task_type=task_type, backend_id=backend_id)
        start = time.perf_counter()

        try:
            response = await asyncio.wait_for(
                self.backend.invoke(
                    backend_id,
                    prompt,
                    max_tokens=options.max_tokens,
                    temperature=options.temperature,
                ),
                timeout=timeout,
            )
            if not response.text:
                raise TransportError(backend_id, "empty response")
        except TimeoutError as e:
            error = TransportError(backend_id, f"timed out after {timeout:.1f}s")
            error.__cause__ = e
        except TransportError as e:
            error = e
        except Exception as e:
            error = TransportError(backend_id, str(e) or type(e).__name__)
            error.__cause__ = e
        else:
            duration_ms = (time.perf_counter() - start) * 1000
            await self.health.record_success(backend_id, task_type, duration_ms)
            record = AttemptRecord(backend_id=backend_id, success=True, duration_ms=duration_ms, fallback=fallback)
            attempts.append(record)
            logger.info("Call to %s completed in %.0fms (%s)", backend_id, duration_ms, task_type)
            self._emit(
                OrchestrationEventType.ATTEMPT_SUCCEEDED,
                task_type=task_type,
                backend_id=backend_id,
                duration_ms=duration_ms,
                fallback=fallback,
            )
            return response.text

        duration_ms = (time.perf_counter() - start) * 1000
        await self.breaker.record_failure(backend_id, task_type)
        record = AttemptRecord(
            backend_id=backend_id,
            success=False,
            duration_ms=duration_ms,
            error=error.reason,
            fallback=fallback,
        )
        attempts.append(record)
        logger.warning("Call to %s failed after %.0fms: %s", backend_id, duration_ms, error.reason)
        self._emit(
            OrchestrationEventType.ATTEMPT_FAILED,
            task_type=task_type,
            backend_id=backend_id,
            duration_ms=duration_ms,
            error=error.reason,
            fallback=fallback,
        )
        raise error

    async def _finish(
        self,
        text: str,
        backend_id: str,
        task_type: str,
        prompt: str,
        options: CallOptions,
        thread_id: str | None,
        cache_key: str | None,
    ) -> str:
        if cache_key is not None and self.cache is not None:
            await self.cache.set(cache_key, text, task_type=task_type, prompt=prompt)
        await self._record_exchange(thread_id, prompt, text, backend_id)
        return text

    async def _record_exchange(self, thread_id: str | None, prompt: str, text: str, backend_id: str | None) -> None:
        if thread_id is None:
            return
        await self.memory.add_exchange(thread_id, prompt, text, model_used=backend_id)

    def _build_prompt(self, prompt: str, thread_id: str | None, options: CallOptions) -> str:
        if thread_id is None or not options.include_context:
            return prompt
        context = self.memory.render_context(thread_id, options.context_fragments)
        if not context:
            return prompt
        return f"{context}\n\n{prompt}"

    def _log_exhausted(self, task_type: str, attempts: Sequence[AttemptRecord]) -> None:
        logger.error(
            "All backends failed for %s: %s",
            task_type,
            ", ".join(f"{a.backend_id} ({a.error})" for a in attempts),
        )
        self._emit(
            OrchestrationEventType.EXHAUSTED,
            task_type=task_type,
            attempted=[a.backend_id for a in attempts],
        )

    # =========================================================================
    # Multi-model
    # =========================================================================

    async def call_multi_model(
        self,
        prompt: str,
        task_types: Sequence[str],
        options: CallOptions | None = None,
    ) -> list[CallOutcome]:
        """Run one call per task type concurrently, fallback disabled."""
        options = (options or CallOptions()).model_copy(update={"allow_fallback": False})
        results = await asyncio.gather(
            *(self.call(prompt, task_type, options) for task_type in task_types),
            return_exceptions=True,
        )

        outcomes = []
        for task_type, result in zip(task_types, results, strict=True):
            if isinstance(result, OrchestrationError):
                outcomes.append(CallOutcome(task_type=task_type, success=False, result=str(result)))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(CallOutcome(task_type=task_type, success=True, result=result))
        return outcomes

    async def call_consensus(
        self,
        prompt: str,
        task_types: Sequence[str] | None = None,
        options: CallOptions | None = None,
    ) -> ConsensusResult:
        """
        Ask several task types the same question.

        The consensus is the longest successful answer; confidence is the
        fraction of task types that answered.
        """
        task_types = list(task_types or self.config.consensus_task_types)
        outcomes = await self.call_multi_model(prompt, task_types, options)
        succeeded = [o for o in outcomes if o.success]
        if not succeeded:
            raise ExhaustedFallbackError("consensus", task_types)

        consensus = max(succeeded, key=lambda o: len(o.result)).result
        return ConsensusResult(
            consensus=consensus,
            individual=succeeded,
            confidence=len(succeeded) / len(task_types),
        )

    # =========================================================================
    # Status / context
    # =========================================================================

    def get_health_status(self) -> dict[str, HealthSnapshot]:
        return self.health.snapshots()

    def get_system_status(self) -> SystemStatus:
        cache: dict[str, Any] = {}
        if self.cache is not None:
            stats = self.cache.get_stats()
            cache = {**stats.model_dump(), "hit_rate": stats.hit_rate}
        return SystemStatus(
            health=self.get_health_status(),
            cache=cache,
            performance={op: stats.model_dump() for op, stats in self.monitor.all_stats().items()},
        )

    def get_enhanced_context(self, thread_id: str | None = None) -> EnhancedContext | GlobalMemoryContext:
        """Thread context with a health snapshot, or the store-wide view when no id is given."""
        if thread_id is None:
            return self.memory.get_global_context()
        context = self.memory.enhanced_context(thread_id)
        if context is None:
            raise ValidationError(f"Unknown thread: {thread_id}", field="thread_id")
        context.health = self.get_health_status()
        return context

    # =========================================================================
    # Lifecycle / persistence
    # =========================================================================

    def start_maintenance(self) -> None:
        self.maintenance.start()

    async def stop(self) -> None:
        """Stop background maintenance and drop pending cooldown timers."""
        await self.maintenance.stop()
        self.breaker.cancel_all()

    async def __aenter__(self) -> Orchestrator:
        self.start_maintenance()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    async def save_state(self, store: StateStore) -> None:
        await self.memory.save_to(store)
        await self.health.save_to(store)

    async def load_state(self, store: StateStore) -> None:
        await self.memory.load_from(store)
        await self.health.load_from(store)

    # =========================================================================
    # Events
    # =========================================================================

    def _emit(
        self,
        event_type: OrchestrationEventType,
        *,
        task_type: str | None = None,
        backend_id: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        **details: Any,
    ) -> None:
        if self.on_event is None:
            return
        self._emit_event(
            OrchestrationEvent(
                event_type=event_type,
                task_type=task_type,
                backend_id=backend_id,
                duration_ms=duration_ms,
                error=error,
                details=details,
            )
        )

    def _emit_event(self, event: OrchestrationEvent) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(event)
        except Exception as e:
            logger.warning("Event callback failed for %s: %s", event.event_type.value, e)
