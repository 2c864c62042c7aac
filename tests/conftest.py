# tests/conftest.py
"""
Shared pytest fixtures and configuration for chuk_ai_orchestrator tests.

Time is driven by ManualScheduler (breaker cooldowns, health timestamps,
cache TTLs) and by a mutable clock for memory timestamps, so no test sleeps.
"""

import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from chuk_ai_orchestrator.exceptions import TransportError
from chuk_ai_orchestrator.models import BackendResponse, ModelCapabilities, ModelProfile
from chuk_ai_orchestrator.orchestration.catalog import ModelCatalog
from chuk_ai_orchestrator.scheduling import ManualScheduler

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logging.getLogger("chuk_ai_orchestrator").setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeClock:
    """Mutable datetime source for MemoryStore."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_profile(
    model_id: str,
    declared_complexity: int = 2,
    reasoning_depth: int = 5,
) -> ModelProfile:
    return ModelProfile(
        model_id=model_id,
        provider=model_id.split("/", 1)[0],
        display_name=model_id,
        declared_complexity=declared_complexity,
        cost_per_token=0.001,
        max_output_tokens=4096,
        capabilities=ModelCapabilities(
            reasoning_depth=reasoning_depth,
            creativity_level=5,
            analytical_precision=5,
            response_speed=5,
            context_window=128_000,
        ),
    )


def make_backend(responses: dict[str, object] | None = None) -> AsyncMock:
    """
    AsyncMock backend. ``responses`` maps backend id -> text or exception.

    Backends not listed answer with ``"<id> says hi"``.
    """
    responses = responses or {}

    async def invoke(backend_id, prompt, max_tokens=2000, temperature=0.7):
        outcome = responses.get(backend_id, f"{backend_id} says hi")
        if isinstance(outcome, BaseException):
            raise outcome
        return BackendResponse(text=outcome, tokens_used=10)

    backend = AsyncMock()
    backend.invoke.side_effect = invoke
    return backend


def invoked_ids(backend: AsyncMock) -> list[str]:
    return [c.args[0] for c in backend.invoke.call_args_list]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def scheduler():
    return ManualScheduler(start=1_000_000.0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def small_catalog():
    """m1 is the only coding backend; m2..m5 are alternates."""
    profiles = [
        make_profile("acme/m1", declared_complexity=4, reasoning_depth=9),
        make_profile("acme/m2", declared_complexity=2, reasoning_depth=6),
        make_profile("acme/m3", declared_complexity=3, reasoning_depth=7),
        make_profile("acme/m4", declared_complexity=4, reasoning_depth=8),
        make_profile("acme/m5", declared_complexity=1, reasoning_depth=4),
    ]
    buckets = {
        "main": ["acme/m2", "acme/m3"],
        "coding": ["acme/m1"],
        "analysis": ["acme/m4", "acme/m3"],
        "review": ["acme/m5"],
    }
    return ModelCatalog(profiles, buckets)


@pytest.fixture
def failing():
    """Factory for a transport failure."""

    def _make(backend_id: str = "x", reason: str = "boom") -> TransportError:
        return TransportError(backend_id, reason)

    return _make
