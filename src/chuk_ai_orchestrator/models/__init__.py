# chuk_ai_orchestrator/models/__init__.py
"""Pydantic models shared across the orchestration and memory layers."""

from .calls import (
    AttemptRecord,
    BackendResponse,
    CallOptions,
    CallOutcome,
    ConsensusResult,
    OrchestrationEvent,
    SystemStatus,
)
from .context import (
    ConsciousnessArc,
    EmotionalLandscape,
    EnhancedContext,
    GlobalMemoryContext,
    MemoryStats,
    TemporalLayers,
)
from .enums import (
    CircuitState,
    ComplexityHint,
    EmotionalTone,
    FragmentRole,
    OrchestrationEventType,
)
from .health import HealthRecord, HealthSnapshot, TaskPerformance
from .memory import ConversationThread, FragmentMetadata, MemoryFragment
from .profile import ModelCapabilities, ModelProfile

__all__ = [
    # Enums
    "CircuitState",
    "ComplexityHint",
    "EmotionalTone",
    "FragmentRole",
    "OrchestrationEventType",
    # Catalog
    "ModelCapabilities",
    "ModelProfile",
    # Health
    "HealthRecord",
    "HealthSnapshot",
    "TaskPerformance",
    # Memory
    "ConversationThread",
    "FragmentMetadata",
    "MemoryFragment",
    # Context
    "ConsciousnessArc",
    "EmotionalLandscape",
    "EnhancedContext",
    "GlobalMemoryContext",
    "MemoryStats",
    "TemporalLayers",
    # Calls
    "AttemptRecord",
    "BackendResponse",
    "CallOptions",
    "CallOutcome",
    "ConsensusResult",
    "OrchestrationEvent",
    "SystemStatus",
]
