# tests/test_orchestrator.py
"""
Tests for Orchestrator.

Covers:
- Primary selection and fallback walk (at most 1 + max_fallbacks attempts)
- Circuit breaker integration: trip, skip, recovery after cooldown
- Health updates for failed attempts survive a successful fallback
- Timeouts, empty responses and unexpected backend exceptions
- Input validation
- Response cache integration
- Conversation memory: exchange recording and context injection
- Multi-model and consensus calls
- Status, context views, persistence and lifecycle
"""

import asyncio

import pytest

from chuk_ai_orchestrator.exceptions import (
    BackendUnavailableError,
    ExhaustedFallbackError,
    ValidationError,
)
from chuk_ai_orchestrator.memory import MemoryStore
from chuk_ai_orchestrator.models import (
    BackendResponse,
    CallOptions,
    GlobalMemoryContext,
    OrchestrationEventType,
)
from chuk_ai_orchestrator.orchestration.cache import ResponseCache
from chuk_ai_orchestrator.orchestration.orchestrator import Orchestrator, OrchestratorConfig
from chuk_ai_orchestrator.persistence import InMemoryStateStore
from conftest import invoked_ids, make_backend

PROMPT = "Write a function that merges two sorted lists"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_orchestrator(catalog, scheduler, clock, backend=None, **kwargs):
    kwargs.setdefault("use_cache", False)
    kwargs.setdefault("memory", MemoryStore(clock=clock))
    return Orchestrator(backend or make_backend(), catalog, scheduler=scheduler, **kwargs)


async def _trip(orchestrator, backend_id):
    for _ in range(orchestrator.breaker.config.failure_threshold):
        await orchestrator.breaker.record_failure(backend_id)
    assert orchestrator.breaker.is_open(backend_id)


# ============================================================================
# Routing and fallback
# ============================================================================


class TestCall:
    @pytest.mark.asyncio
    async def test_primary_success(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        assert await orch.call(PROMPT, "coding") == "acme/m1 says hi"
        assert invoked_ids(backend) == ["acme/m1"]
        assert orch.health.get("acme/m1").successful_calls == 1

    @pytest.mark.asyncio
    async def test_default_task_type(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await orch.call(PROMPT)
        assert invoked_ids(backend) == ["acme/m2"]

    @pytest.mark.asyncio
    async def test_options_forwarded(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await orch.call(PROMPT, "coding", CallOptions(max_tokens=123, temperature=0.2))
        kwargs = backend.invoke.call_args.kwargs
        assert kwargs == {"max_tokens": 123, "temperature": 0.2}

    @pytest.mark.asyncio
    async def test_fallback_after_primary_failure(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        assert await orch.call(PROMPT, "coding") == "acme/m2 says hi"
        assert invoked_ids(backend) == ["acme/m1", "acme/m2"]

    @pytest.mark.asyncio
    async def test_failed_attempt_health_kept(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await orch.call(PROMPT, "coding")

        m1 = orch.health.get("acme/m1")
        assert m1.success_rate == pytest.approx(0.75)
        assert m1.consecutive_failures == 1
        assert m1.total_calls == 1
        assert orch.health.get("acme/m2").successful_calls == 1

    @pytest.mark.asyncio
    async def test_at_most_four_attempts(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({b: failing(b) for b in small_catalog.backend_ids})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        with pytest.raises(ExhaustedFallbackError) as exc_info:
            await orch.call(PROMPT, "coding")

        assert backend.invoke.await_count == 4
        err = exc_info.value
        assert err.attempted == ["acme/m1", "acme/m2", "acme/m3", "acme/m4"]
        assert str(err).startswith("All models failed for task type: coding")
        assert "boom" in str(err.last_error)

    @pytest.mark.asyncio
    async def test_max_fallbacks_config(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({b: failing(b) for b in small_catalog.backend_ids})
        orch = _make_orchestrator(
            small_catalog, scheduler, clock, backend, config=OrchestratorConfig(max_fallbacks=1)
        )
        with pytest.raises(ExhaustedFallbackError):
            await orch.call(PROMPT, "coding")
        assert backend.invoke.await_count == 2

    @pytest.mark.asyncio
    async def test_fallback_disabled(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        with pytest.raises(ExhaustedFallbackError) as exc_info:
            await orch.call(PROMPT, "coding", CallOptions(allow_fallback=False))
        assert exc_info.value.attempted == ["acme/m1"]
        assert invoked_ids(backend) == ["acme/m1"]


# ============================================================================
# Failure kinds
# ============================================================================


class TestFailureKinds:
    @pytest.mark.asyncio
    async def test_timeout_is_a_failure(self, small_catalog, scheduler, clock):
        async def invoke(backend_id, prompt, max_tokens=2000, temperature=0.7):
            if backend_id == "acme/m1":
                await asyncio.sleep(5)
            return BackendResponse(text=f"{backend_id} ok")

        backend = make_backend()
        backend.invoke.side_effect = invoke
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        result = await orch.call(PROMPT, "coding", CallOptions(timeout_seconds=0.05))
        assert result == "acme/m2 ok"
        assert orch.health.get("acme/m1").consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_empty_text_is_a_failure(self, small_catalog, scheduler, clock):
        backend = make_backend({"acme/m1": ""})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        assert await orch.call(PROMPT, "coding") == "acme/m2 says hi"
        assert orch.health.get("acme/m1").consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_wrapped(self, small_catalog, scheduler, clock):
        backend = make_backend({b: ValueError("bad payload") for b in small_catalog.backend_ids})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        with pytest.raises(ExhaustedFallbackError) as exc_info:
            await orch.call(PROMPT, "coding")
        assert isinstance(exc_info.value.last_error.__cause__, ValueError)


# ============================================================================
# Circuit breaker integration
# ============================================================================


class TestCircuitIntegration:
    @pytest.mark.asyncio
    async def test_open_primary_skipped(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await _trip(orch, "acme/m1")

        assert await orch.call(PROMPT, "coding") == "acme/m2 says hi"
        assert "acme/m1" not in invoked_ids(backend)

    @pytest.mark.asyncio
    async def test_open_backends_excluded_from_fallback(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await _trip(orch, "acme/m2")

        assert await orch.call(PROMPT, "coding") == "acme/m3 says hi"
        assert invoked_ids(backend) == ["acme/m1", "acme/m3"]

    @pytest.mark.asyncio
    async def test_recovery_after_cooldown(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await _trip(orch, "acme/m1")

        await orch.call(PROMPT, "coding")
        scheduler.advance(299)
        await orch.call(PROMPT, "coding")
        assert "acme/m1" not in invoked_ids(backend)

        scheduler.advance(1)
        assert orch.health.get("acme/m1").available
        assert orch.health.get("acme/m1").consecutive_failures == 0
        assert await orch.call(PROMPT, "coding") == "acme/m1 says hi"

    @pytest.mark.asyncio
    async def test_five_failing_calls_open_primary(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        for _ in range(4):
            await orch.call(PROMPT, "coding")
        assert not orch.breaker.is_open("acme/m1")

        await orch.call(PROMPT, "coding")
        assert orch.breaker.is_open("acme/m1")
        assert orch.health.get("acme/m1").success_rate == pytest.approx(0.75**5)

        backend.invoke.reset_mock()
        assert await orch.call(PROMPT, "coding") == "acme/m2 says hi"
        assert "acme/m1" not in invoked_ids(backend)
        assert invoked_ids(backend) == ["acme/m2"]

    @pytest.mark.asyncio
    async def test_open_without_fallback(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await _trip(orch, "acme/m1")

        with pytest.raises(BackendUnavailableError):
            await orch.call(PROMPT, "coding", CallOptions(allow_fallback=False))
        backend.invoke.assert_not_called()

    @pytest.mark.asyncio
    async def test_everything_open(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        for backend_id in small_catalog.backend_ids:
            await _trip(orch, backend_id)

        with pytest.raises(BackendUnavailableError):
            await orch.call(PROMPT, "coding")
        backend.invoke.assert_not_called()


# ============================================================================
# Validation
# ============================================================================


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("prompt", ["", "   ", None, 42])
    async def test_bad_prompt(self, small_catalog, scheduler, clock, prompt):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        with pytest.raises(ValidationError) as exc_info:
            await orch.call(prompt)
        assert exc_info.value.field == "prompt"

    @pytest.mark.asyncio
    async def test_oversized_prompt(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock, config=OrchestratorConfig(max_prompt_length=10))
        with pytest.raises(ValidationError, match="maximum length"):
            await orch.call("x" * 11)

    @pytest.mark.asyncio
    async def test_blank_thread_id(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        with pytest.raises(ValidationError) as exc_info:
            await orch.call(PROMPT, thread_id=" ")
        assert exc_info.value.field == "thread_id"

    @pytest.mark.asyncio
    async def test_nothing_invoked_on_invalid_input(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        with pytest.raises(ValidationError):
            await orch.call("")
        backend.invoke.assert_not_called()


# ============================================================================
# Cache
# ============================================================================


class TestCacheIntegration:
    @pytest.mark.asyncio
    async def test_repeat_served_from_cache(self, small_catalog, scheduler, clock):
        backend = make_backend()
        events = []
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend, use_cache=True, on_event=events.append)

        first = await orch.call(PROMPT, "coding")
        second = await orch.call(PROMPT, "coding")

        assert first == second
        assert backend.invoke.await_count == 1
        assert OrchestrationEventType.CACHE_HIT in [e.event_type for e in events]
        assert orch.get_system_status().cache["hits"] == 1

    @pytest.mark.asyncio
    async def test_cache_bypass_option(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend, use_cache=True)
        await orch.call(PROMPT, "coding", CallOptions(use_cache=False))
        await orch.call(PROMPT, "coding", CallOptions(use_cache=False))
        assert backend.invoke.await_count == 2

    @pytest.mark.asyncio
    async def test_time_sensitive_not_cached(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend, use_cache=True)
        prompt = "What are the latest changes in the repo?"
        await orch.call(prompt, "coding")
        await orch.call(prompt, "coding")
        assert backend.invoke.await_count == 2

    @pytest.mark.asyncio
    async def test_failures_not_cached(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({b: failing(b) for b in small_catalog.backend_ids})
        cache = ResponseCache(scheduler=scheduler)
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend, cache=cache)
        with pytest.raises(ExhaustedFallbackError):
            await orch.call(PROMPT, "coding")
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_disabled_cache(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        assert orch.cache is None
        assert orch.get_system_status().cache == {}


# ============================================================================
# Memory
# ============================================================================


class TestMemoryIntegration:
    @pytest.mark.asyncio
    async def test_exchange_recorded(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        await orch.call(PROMPT, "coding", thread_id="t1")

        thread = orch.memory.get_thread("t1")
        assert [f.content for f in thread.fragments] == [PROMPT, "acme/m1 says hi"]
        assert thread.fragments[1].model_used == "acme/m1"

    @pytest.mark.asyncio
    async def test_no_thread_no_memory(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        await orch.call(PROMPT, "coding")
        assert len(orch.memory) == 0

    @pytest.mark.asyncio
    async def test_failed_call_not_recorded(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({b: failing(b) for b in small_catalog.backend_ids})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        with pytest.raises(ExhaustedFallbackError):
            await orch.call(PROMPT, "coding", thread_id="t1")
        assert "t1" not in orch.memory

    @pytest.mark.asyncio
    async def test_context_prepended(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await orch.call("first question here", "coding", thread_id="t1")
        await orch.call("second question here", "coding", thread_id="t1")

        sent = backend.invoke.call_args.args[1]
        assert sent == (
            '<CONTEXT>\nU: "first question here"\nA: "acme/m1 says hi"\n</CONTEXT>\n\nsecond question here'
        )

    @pytest.mark.asyncio
    async def test_context_can_be_skipped(self, small_catalog, scheduler, clock):
        backend = make_backend()
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await orch.call("first question here", "coding", thread_id="t1")
        await orch.call("second question here", "coding", CallOptions(include_context=False), thread_id="t1")
        assert backend.invoke.call_args.args[1] == "second question here"

    @pytest.mark.asyncio
    async def test_cache_hit_still_recorded(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock, use_cache=True)
        await orch.call(PROMPT, "coding")
        await orch.call(PROMPT, "coding", thread_id="t1")

        thread = orch.memory.get_thread("t1")
        assert thread.fragment_count == 2
        assert thread.fragments[1].model_used is None


# ============================================================================
# Multi-model / consensus
# ============================================================================


class TestMultiModel:
    @pytest.mark.asyncio
    async def test_outcomes_per_task(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        outcomes = await orch.call_multi_model(PROMPT, ["coding", "analysis"])

        assert [o.task_type for o in outcomes] == ["coding", "analysis"]
        assert outcomes[0].success is False
        assert "All models failed" in outcomes[0].result
        assert outcomes[1].success is True
        # Fallback disabled per task
        assert invoked_ids(backend).count("acme/m2") == 0

    @pytest.mark.asyncio
    async def test_consensus_picks_longest(self, small_catalog, scheduler, clock):
        backend = make_backend({"acme/m5": "a much longer and more thorough answer"})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)

        result = await orch.call_consensus(PROMPT)

        assert result.consensus == "a much longer and more thorough answer"
        assert result.confidence == 1.0
        assert len(result.individual) == 3

    @pytest.mark.asyncio
    async def test_consensus_partial(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({"acme/m5": failing("acme/m5")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        result = await orch.call_consensus(PROMPT)
        assert result.confidence == pytest.approx(2 / 3)
        assert result["consensus"] in {"acme/m2 says hi", "acme/m3 says hi"}

    @pytest.mark.asyncio
    async def test_consensus_all_fail(self, small_catalog, scheduler, clock, failing):
        backend = make_backend({b: failing(b) for b in small_catalog.backend_ids})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        with pytest.raises(ExhaustedFallbackError, match="consensus"):
            await orch.call_consensus(PROMPT, ["coding", "review"])


# ============================================================================
# Status, events, persistence, lifecycle
# ============================================================================


class TestStatus:
    @pytest.mark.asyncio
    async def test_system_status(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        await orch.call(PROMPT, "coding")
        status = orch.get_system_status()
        assert set(status.health) == set(small_catalog.backend_ids)
        assert status.performance["call_coding"]["count"] == 1

    @pytest.mark.asyncio
    async def test_unknown_task_types_share_general_metric(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        for task_type in ("limerick", "sonnet", "haiku"):
            await orch.call(PROMPT, task_type)
        performance = orch.get_system_status().performance
        assert performance["call_main"]["count"] == 3
        assert not any(key.startswith(("call_limerick", "call_sonnet", "call_haiku")) for key in performance)

    @pytest.mark.asyncio
    async def test_enhanced_context(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        await orch.call(PROMPT, "coding", thread_id="t1")

        ctx = orch.get_enhanced_context("t1")
        assert ctx.thread_id == "t1"
        assert "acme/m1" in ctx.health

        assert isinstance(orch.get_enhanced_context(), GlobalMemoryContext)
        with pytest.raises(ValidationError):
            orch.get_enhanced_context("missing")

    @pytest.mark.asyncio
    async def test_event_sequence(self, small_catalog, scheduler, clock, failing):
        events = []
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend, on_event=events.append)
        await orch.call(PROMPT, "coding")
        assert [e.event_type for e in events] == [
            OrchestrationEventType.ATTEMPT_STARTED,
            OrchestrationEventType.ATTEMPT_FAILED,
            OrchestrationEventType.FALLBACK_ENGAGED,
            OrchestrationEventType.ATTEMPT_STARTED,
            OrchestrationEventType.ATTEMPT_SUCCEEDED,
        ]
        assert events[1].error == "boom"
        assert events[4].details["fallback"] is True

    @pytest.mark.asyncio
    async def test_broken_observer_does_not_break_call(self, small_catalog, scheduler, clock):
        def explode(event):
            raise RuntimeError("observer down")

        orch = _make_orchestrator(small_catalog, scheduler, clock, on_event=explode)
        assert await orch.call(PROMPT, "coding") == "acme/m1 says hi"


class TestPersistenceAndLifecycle:
    @pytest.mark.asyncio
    async def test_save_and_load_state(self, small_catalog, scheduler, clock, failing):
        store = InMemoryStateStore()
        backend = make_backend({"acme/m1": failing("acme/m1")})
        orch = _make_orchestrator(small_catalog, scheduler, clock, backend)
        await orch.call(PROMPT, "coding", thread_id="t1")
        await orch.save_state(store)

        fresh = _make_orchestrator(small_catalog, scheduler, clock)
        await fresh.load_state(store)
        assert fresh.memory.get_thread("t1").fragment_count == 2
        assert fresh.health.get("acme/m1").success_rate == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_context_manager(self, small_catalog, scheduler, clock):
        orch = _make_orchestrator(small_catalog, scheduler, clock)
        async with orch:
            assert orch.maintenance.running
            await _trip(orch, "acme/m1")
        assert not orch.maintenance.running
        assert scheduler.pending == 0
