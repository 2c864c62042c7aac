# chuk_ai_orchestrator/memory/eviction_policy.py
"""
Thread eviction and priority decay policies for the MemoryStore.

A policy answers two questions: how a thread's priority decays while it is
left alone, and which resident threads should go first when the store is
over its thread cap.

Usage::

    from chuk_ai_orchestrator.memory.eviction_policy import (
        LeastRecentActivityEviction,
        PriorityDecayEviction,
    )

    # Default: idle time weighed against priority
    store = MemoryStore(eviction_policy=PriorityDecayEviction())

    # Plain oldest-activity-first
    store = MemoryStore(eviction_policy=LeastRecentActivityEviction())
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.models import ConversationThread

logger = logging.getLogger(__name__)

# =============================================================================
# Models
# =============================================================================


class EvictionCandidate(BaseModel):
    """A scored eviction candidate. Higher score = evict first."""

    thread_id: str
    score: float


class EvictionContext(BaseModel):
    """Everything a policy needs to rank resident threads."""

    now: datetime
    threads: list[ConversationThread] = Field(default_factory=list)
    protected_thread_ids: set[str] = Field(default_factory=set)


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class EvictionPolicy(Protocol):
    """
    Protocol for swappable eviction strategies.

    ``score_candidates`` returns candidates sorted so the first entry is
    evicted first. Protected threads MUST be excluded.
    """

    def score_candidates(self, context: EvictionContext) -> list[EvictionCandidate]: ...

    def decayed_priority(self, thread: ConversationThread, now: datetime) -> float: ...


# =============================================================================
# Implementations
# =============================================================================


class PriorityDecayConfig(BaseModel):
    decay_lambda: float = Field(default=0.1, ge=0.0, description="Per-day decay rate")
    priority_floor: float = Field(default=0.1, gt=0.0)


class PriorityDecayEviction:
    """
    Default policy.

    Decay: ``priority * exp(-lambda * days_since_last_access)``, floored.
    Eviction score: ``days_since_last_activity / priority_score``; idle,
    low-priority threads go first. Ties keep resident order.
    """

    def __init__(self, config: PriorityDecayConfig | None = None) -> None:
        self.config = config or PriorityDecayConfig()

    def decayed_priority(self, thread: ConversationThread, now: datetime) -> float:
        cfg = self.config
        decayed = thread.priority_score * math.exp(-cfg.decay_lambda * thread.days_since_access(now))
        return max(decayed, cfg.priority_floor)

    def score_candidates(self, context: EvictionContext) -> list[EvictionCandidate]:
        candidates = [
            EvictionCandidate(
                thread_id=thread.thread_id,
                score=thread.days_since_activity(context.now) / thread.priority_score,
            )
            for thread in context.threads
            if thread.thread_id not in context.protected_thread_ids
        ]
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates


class LeastRecentActivityEviction:
    """
    Oldest ``last_activity`` first, priority ignored.

    The MemoryStore also uses this to force out a thread when the configured
    policy offers no candidate.
    """

    def __init__(self, config: PriorityDecayConfig | None = None) -> None:
        self.config = config or PriorityDecayConfig()

    def decayed_priority(self, thread: ConversationThread, now: datetime) -> float:
        return max(thread.priority_score, self.config.priority_floor)

    def score_candidates(self, context: EvictionContext) -> list[EvictionCandidate]:
        candidates = [
            EvictionCandidate(thread_id=thread.thread_id, score=thread.days_since_activity(context.now))
            for thread in context.threads
            if thread.thread_id not in context.protected_thread_ids
        ]
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates
