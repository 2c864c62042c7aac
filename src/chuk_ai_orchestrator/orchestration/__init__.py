# chuk_ai_orchestrator/orchestration/__init__.py
"""
Model orchestration: backend selection, health tracking, circuit breaking,
fallback and the Orchestrator facade.
"""

from .backend import EchoBackend, InferenceBackend, OpenRouterBackend
from .cache import CacheConfig, CacheStats, ResponseCache
from .catalog import DEFAULT_BUCKETS, DEFAULT_PROFILES, GENERAL_BUCKET, ModelCatalog
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .complexity import ComplexityAnalyzerConfig, TaskComplexityAnalyzer
from .fallback import FallbackChain
from .health import HealthConfig, HealthTracker
from .metrics import OperationStats, PerformanceMonitor
from .orchestrator import Orchestrator, OrchestratorConfig
from .selector import Selector, SelectorConfig, hint_weight

__all__ = [
    # Facade
    "Orchestrator",
    "OrchestratorConfig",
    # Catalog
    "DEFAULT_BUCKETS",
    "DEFAULT_PROFILES",
    "GENERAL_BUCKET",
    "ModelCatalog",
    # Selection
    "ComplexityAnalyzerConfig",
    "Selector",
    "SelectorConfig",
    "TaskComplexityAnalyzer",
    "hint_weight",
    # Health / recovery
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "FallbackChain",
    "HealthConfig",
    "HealthTracker",
    # Backends
    "EchoBackend",
    "InferenceBackend",
    "OpenRouterBackend",
    # Cache / metrics
    "CacheConfig",
    "CacheStats",
    "OperationStats",
    "PerformanceMonitor",
    "ResponseCache",
]
