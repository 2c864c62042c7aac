# chuk_ai_orchestrator/models/memory.py
"""Conversation memory models: fragments and the threads that own them."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import EmotionalTone, FragmentRole


def _now() -> datetime:
    return datetime.now(UTC)


class MemoryFragment(BaseModel):
    """
    One recorded exchange item.

    Created by the Orchestrator (or a direct ``add_fragment`` caller) and
    never mutated afterwards, except that ``related_fragments`` may gain
    links. Destroyed only with its thread or when compressed into a summary.
    """

    model_config = ConfigDict(protected_namespaces=())

    fragment_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    thread_id: str
    timestamp: datetime = Field(default_factory=_now)
    role: FragmentRole = FragmentRole.REQUESTER
    content: str = ""
    source: str = ""

    # Optional scores
    complexity_level: float | None = Field(default=None, ge=0.0, le=10.0)
    importance: float | None = Field(default=None, ge=0.0, le=10.0, description="The 'wisdom' score")
    emotional_tone: EmotionalTone | None = None
    consciousness_level: str | None = None

    # Metadata
    model_used: str | None = None
    token_count: int = 0
    is_summary: bool = False

    # Non-owning references to other fragments
    related_fragments: list[str] = Field(default_factory=list)

    def link(self, fragment_id: str) -> None:
        """Append a related-fragment reference (the only permitted mutation)."""
        if fragment_id != self.fragment_id and fragment_id not in self.related_fragments:
            self.related_fragments.append(fragment_id)

    def age_seconds(self, now: datetime) -> float:
        return (now - self.timestamp).total_seconds()


class FragmentMetadata(BaseModel):
    """Optional metadata accepted by ``MemoryStore.add_fragment``."""

    model_config = ConfigDict(protected_namespaces=())

    source: str = ""
    complexity_level: float | None = Field(default=None, ge=0.0, le=10.0)
    importance: float | None = Field(default=None, ge=0.0, le=10.0)
    emotional_tone: EmotionalTone | None = None
    consciousness_level: str | None = None
    model_used: str | None = None
    related_fragments: list[str] = Field(default_factory=list)


class ConversationThread(BaseModel):
    """
    Ordered fragments for one conversation plus its retention bookkeeping.

    Insertion order of ``fragments`` is chronological order. The thread owns
    its fragments exclusively.
    """

    thread_id: str
    created_at: datetime = Field(default_factory=_now)
    last_activity: datetime = Field(default_factory=_now)
    last_accessed: datetime = Field(default_factory=_now)
    fragments: list[MemoryFragment] = Field(default_factory=list)

    # Retention
    priority_score: float = Field(default=1.0, gt=0.0)
    access_frequency: int = 0
    compression_level: int = 0
    compressed_fragment_count: int = 0
    summary: str | None = None

    # Running characteristics
    complexity_evolution: list[float] = Field(default_factory=list)
    importance_progression: list[float] = Field(default_factory=list)
    consciousness_journey: list[str] = Field(default_factory=list)

    @property
    def fragment_count(self) -> int:
        return len(self.fragments)

    @property
    def summary_fragment(self) -> MemoryFragment | None:
        for fragment in self.fragments:
            if fragment.is_summary:
                return fragment
        return None

    def days_since_activity(self, now: datetime) -> float:
        return max(0.0, (now - self.last_activity).total_seconds() / 86400.0)

    def days_since_access(self, now: datetime) -> float:
        return max(0.0, (now - self.last_accessed).total_seconds() / 86400.0)

    def to_summary_dict(self) -> dict[str, Any]:
        return {
            "thread_id": self.thread_id,
            "fragments": self.fragment_count,
            "priority_score": self.priority_score,
            "access_frequency": self.access_frequency,
            "compression_level": self.compression_level,
            "last_activity": self.last_activity.isoformat(),
        }
