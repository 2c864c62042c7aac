# chuk_ai_orchestrator/__init__.py
"""
chuk-ai-orchestrator - multi-backend model orchestration with conversation memory.

Usage::

    from chuk_ai_orchestrator import Orchestrator, OpenRouterBackend

    async with Orchestrator(OpenRouterBackend()) as orchestrator:
        text = await orchestrator.call("Review this diff", "security", thread_id="pr-42")
"""

from chuk_ai_orchestrator.exceptions import (
    BackendUnavailableError,
    CapacityError,
    ExhaustedFallbackError,
    OrchestrationError,
    StorageError,
    TransportError,
    ValidationError,
)
from chuk_ai_orchestrator.memory import MemoryConfig, MemoryStore
from chuk_ai_orchestrator.models import (
    CallOptions,
    ComplexityHint,
    EmotionalTone,
    FragmentMetadata,
    FragmentRole,
)
from chuk_ai_orchestrator.orchestration import (
    EchoBackend,
    ModelCatalog,
    OpenRouterBackend,
    Orchestrator,
    OrchestratorConfig,
)
from chuk_ai_orchestrator.persistence import InMemoryStateStore, JsonFileStateStore
from chuk_ai_orchestrator.scheduling import AsyncioScheduler, ManualScheduler

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Facade
    "Orchestrator",
    "OrchestratorConfig",
    "ModelCatalog",
    "CallOptions",
    "ComplexityHint",
    # Backends
    "EchoBackend",
    "OpenRouterBackend",
    # Memory
    "MemoryConfig",
    "MemoryStore",
    "FragmentMetadata",
    "FragmentRole",
    "EmotionalTone",
    # Persistence / time
    "InMemoryStateStore",
    "JsonFileStateStore",
    "AsyncioScheduler",
    "ManualScheduler",
    # Errors
    "OrchestrationError",
    "ValidationError",
    "TransportError",
    "BackendUnavailableError",
    "ExhaustedFallbackError",
    "CapacityError",
    "StorageError",
]
