# chuk_ai_orchestrator/memory/__init__.py
"""
Conversation memory: threaded fragment storage with priority decay,
eviction, compression and context assembly.
"""

from .compressor import CompressionResult, ThreadCompressor, ThreadCompressorConfig
from .context_assembler import (
    ContextAssembler,
    ContextAssemblerConfig,
    extract_key_terms,
    term_similarity,
)
from .eviction_policy import (
    EvictionCandidate,
    EvictionContext,
    EvictionPolicy,
    LeastRecentActivityEviction,
    PriorityDecayConfig,
    PriorityDecayEviction,
)
from .maintenance import MaintenanceLoop, MaintenanceReport
from .store import MEMORY_STATE_KEY, MemoryConfig, MemoryStore

__all__ = [
    # Store
    "MEMORY_STATE_KEY",
    "MemoryConfig",
    "MemoryStore",
    # Eviction
    "EvictionCandidate",
    "EvictionContext",
    "EvictionPolicy",
    "LeastRecentActivityEviction",
    "PriorityDecayConfig",
    "PriorityDecayEviction",
    # Compression
    "CompressionResult",
    "ThreadCompressor",
    "ThreadCompressorConfig",
    # Context
    "ContextAssembler",
    "ContextAssemblerConfig",
    "extract_key_terms",
    "term_similarity",
    # Maintenance
    "MaintenanceLoop",
    "MaintenanceReport",
]
