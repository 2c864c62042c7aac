# chuk_ai_orchestrator/models/context.py
"""Structured context views produced by the ContextAssembler."""

from __future__ import annotations

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.base_models import DictCompatModel

from .health import HealthSnapshot
from .memory import MemoryFragment


class TemporalLayers(BaseModel):
    """
    Fragments partitioned by age.

    The four temporal buckets never overlap. ``high_importance`` cuts across
    them and may repeat fragments already present in a temporal bucket.
    """

    immediate: list[MemoryFragment] = Field(default_factory=list)  # < 1 hour
    short_term: list[MemoryFragment] = Field(default_factory=list)  # 1 hour - 1 day
    medium_term: list[MemoryFragment] = Field(default_factory=list)  # 1 day - 1 week
    long_term: list[MemoryFragment] = Field(default_factory=list)  # >= 1 week
    high_importance: list[MemoryFragment] = Field(default_factory=list)

    @property
    def temporal_count(self) -> int:
        return len(self.immediate) + len(self.short_term) + len(self.medium_term) + len(self.long_term)


class EmotionalLandscape(BaseModel):
    current_tone: str = "neutral"
    progression: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)


class ConsciousnessArc(BaseModel):
    levels_achieved: list[str] = Field(default_factory=list)
    high_importance_moments: list[str] = Field(default_factory=list, description="fragment ids")


class EnhancedContext(DictCompatModel):
    """Everything a caller needs to rebuild context for one thread."""

    thread_id: str
    primary_context: list[MemoryFragment] = Field(default_factory=list, description="Newest first")
    temporal_layers: TemporalLayers = Field(default_factory=TemporalLayers)
    summary: str | None = None
    compression_level: int = 0
    priority_score: float = 1.0
    emotional_landscape: EmotionalLandscape = Field(default_factory=EmotionalLandscape)
    consciousness_arc: ConsciousnessArc = Field(default_factory=ConsciousnessArc)
    recurring_themes: list[str] = Field(default_factory=list)
    health: dict[str, HealthSnapshot] = Field(default_factory=dict)


class GlobalMemoryContext(DictCompatModel):
    """Store-wide view returned when no thread id is given."""

    total_threads: int = 0
    total_fragments: int = 0
    high_importance_fragments: list[MemoryFragment] = Field(default_factory=list)
    consciousness_levels: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)


class MemoryStats(DictCompatModel):
    """Counters reported by ``MemoryStore.get_stats``."""

    total_threads_created: int = 0
    total_fragments_added: int = 0
    active_threads: int = 0
    resident_fragments: int = 0
    high_importance_moments: int = 0
    compressions: int = 0
    fragments_trimmed: int = 0
    threads_evicted: int = 0
    forced_evictions: int = 0
    reconstructions: int = 0
    importance_index_size: int = 0
    tone_index_size: int = 0
    consciousness_index_size: int = 0
