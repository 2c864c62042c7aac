# chuk_ai_orchestrator/models/enums.py
"""Enums shared by the orchestration and memory layers."""

from enum import Enum


class FragmentRole(str, Enum):
    """Who produced a memory fragment."""

    REQUESTER = "requester"
    RESPONDER = "responder"
    SYSTEM = "system"


class EmotionalTone(str, Enum):
    """Coarse tone label attached to a fragment."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    COMPLEX = "complex"


class CircuitState(str, Enum):
    """Two-state breaker. There is no half-open probe state."""

    CLOSED = "closed"  # usable
    OPEN = "open"  # excluded from selection until cooldown fires


class ComplexityHint(str, Enum):
    """Caller-supplied complexity hint."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    ENTERPRISE = "enterprise"

    @property
    def weight(self) -> int:
        return _COMPLEXITY_WEIGHTS[self]


_COMPLEXITY_WEIGHTS = {
    ComplexityHint.SIMPLE: 1,
    ComplexityHint.MEDIUM: 2,
    ComplexityHint.COMPLEX: 3,
    ComplexityHint.ENTERPRISE: 4,
}


class OrchestrationEventType(str, Enum):
    """Notifications delivered to an optional observer callback."""

    CACHE_HIT = "cache_hit"
    ATTEMPT_STARTED = "attempt_started"
    ATTEMPT_SUCCEEDED = "attempt_succeeded"
    ATTEMPT_FAILED = "attempt_failed"
    FALLBACK_ENGAGED = "fallback_engaged"
    CIRCUIT_OPENED = "circuit_opened"
    CIRCUIT_CLOSED = "circuit_closed"
    EXHAUSTED = "exhausted"
