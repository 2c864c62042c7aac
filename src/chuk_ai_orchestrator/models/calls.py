# chuk_ai_orchestrator/models/calls.py
"""Request options, backend responses and call results."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chuk_ai_orchestrator.base_models import DictCompatModel
from chuk_ai_orchestrator.config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE

from .enums import ComplexityHint, OrchestrationEventType
from .health import HealthSnapshot


class CallOptions(BaseModel):
    """Per-call knobs accepted by ``Orchestrator.call``."""

    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    complexity: ComplexityHint = ComplexityHint.MEDIUM
    use_cache: bool = True
    allow_fallback: bool = True
    include_context: bool = True
    context_fragments: int = Field(default=10, ge=0, description="Prior fragments rendered into the prompt")
    timeout_seconds: float | None = Field(default=None, gt=0.0)


class BackendResponse(BaseModel):
    """What a remote inference backend hands back."""

    text: str
    tokens_used: int = 0


class AttemptRecord(BaseModel):
    """One try against one backend during a logical call."""

    backend_id: str
    success: bool
    duration_ms: float
    error: str | None = None
    fallback: bool = False


class CallOutcome(BaseModel):
    """Result of one task type inside a multi-model call."""

    task_type: str
    success: bool
    result: str


class ConsensusResult(DictCompatModel):
    consensus: str
    individual: list[CallOutcome] = Field(default_factory=list)
    confidence: float = 0.0


class OrchestrationEvent(BaseModel):
    """Notification passed to an injected observer callback."""

    model_config = ConfigDict(protected_namespaces=())

    event_type: OrchestrationEventType
    task_type: str | None = None
    backend_id: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    details: dict[str, Any] = Field(default_factory=dict)


class SystemStatus(DictCompatModel):
    health: dict[str, HealthSnapshot] = Field(default_factory=dict)
    cache: dict[str, Any] = Field(default_factory=dict)
    performance: dict[str, Any] = Field(default_factory=dict)
