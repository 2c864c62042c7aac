# chuk_ai_orchestrator/memory/context_assembler.py
"""
Context Assembler - turns a thread into prompt context and structured views.

Two outputs:

- ``render`` produces the text block prepended to a prompt: the thread
  summary (if any) followed by the newest fragments in chronological order.
- ``assemble`` produces an EnhancedContext: primary context, temporal
  layers, emotional landscape, consciousness arc and recurring themes.

The rendered block looks like::

    <CONTEXT>
    S: "Compressed summary of 12 fragments. ..."
    U: "How should the cache be keyed?"
    A: "Hash the normalized request..."
    </CONTEXT>
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.models import (
    ConsciousnessArc,
    ConversationThread,
    EmotionalLandscape,
    EmotionalTone,
    EnhancedContext,
    FragmentRole,
    MemoryFragment,
    TemporalLayers,
)

HOUR = timedelta(hours=1)
DAY = timedelta(days=1)
WEEK = timedelta(weeks=1)

ROLE_PREFIXES = {
    FragmentRole.REQUESTER: "U",
    FragmentRole.RESPONDER: "A",
    FragmentRole.SYSTEM: "S",
}

STOP_WORDS = frozenset(
    {
        "the", "and", "but", "for", "are", "with", "this", "that", "have", "from",
        "they", "been", "said", "each", "which", "their", "time", "will", "about",
        "would", "there", "could", "other",
    }
)  # fmt: skip

_WORD = re.compile(r"\b\w{3,}\b")


# =============================================================================
# Term helpers (shared with MemoryStore.find_related)
# =============================================================================


def extract_key_terms(text: str) -> list[str]:
    """Lower-cased words longer than three characters, stop words removed."""
    return [w for w in _WORD.findall(text.lower()) if len(w) > 3 and w not in STOP_WORDS]


def term_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard similarity of two term collections."""
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


# =============================================================================
# Assembler
# =============================================================================


class ContextAssemblerConfig(BaseModel):
    importance_threshold: float = Field(default=7.0, ge=0.0, le=10.0)
    primary_limit: int = Field(default=20, gt=0)
    theme_min_count: int = Field(default=3, gt=0)
    max_themes: int = Field(default=5, gt=0)
    render_max_chars: int = Field(default=2000, gt=0, description="Per-fragment cap in rendered context")


class ContextAssembler:
    def __init__(self, config: ContextAssemblerConfig | None = None) -> None:
        self.config = config or ContextAssemblerConfig()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def temporal_layers(self, fragments: Sequence[MemoryFragment], now: datetime) -> TemporalLayers:
        layers = TemporalLayers()
        for fragment in fragments:
            age = now - fragment.timestamp
            if age < HOUR:
                layers.immediate.append(fragment)
            elif age < DAY:
                layers.short_term.append(fragment)
            elif age < WEEK:
                layers.medium_term.append(fragment)
            else:
                layers.long_term.append(fragment)
            if (fragment.importance or 0) >= self.config.importance_threshold:
                layers.high_importance.append(fragment)
        return layers

    def primary_context(self, fragments: Sequence[MemoryFragment], limit: int | None = None) -> list[MemoryFragment]:
        """Newest first, at most ``limit`` fragments."""
        limit = self.config.primary_limit if limit is None else limit
        indexed = sorted(enumerate(fragments), key=lambda p: (p[1].timestamp, p[0]), reverse=True)
        return [f for _, f in indexed[:limit]]

    def emotional_landscape(self, thread: ConversationThread) -> EmotionalLandscape:
        tones = [f.emotional_tone.value for f in thread.fragments if f.emotional_tone]
        if not tones:
            return EmotionalLandscape()

        insights = []
        if EmotionalTone.POSITIVE.value in tones and EmotionalTone.NEGATIVE.value in tones:
            insights.append("Complex emotional journey with both positive and negative elements")
        dominant, _ = Counter(tones).most_common(1)[0]
        insights.append(f"Predominantly {dominant} across {len(tones)} toned fragments")
        return EmotionalLandscape(current_tone=tones[-1], progression=tones, insights=insights)

    def consciousness_arc(self, thread: ConversationThread) -> ConsciousnessArc:
        leveled = [f for f in thread.fragments if f.consciousness_level]
        return ConsciousnessArc(
            levels_achieved=list(dict.fromkeys(f.consciousness_level for f in leveled)),
            high_importance_moments=[
                f.fragment_id for f in leveled if (f.importance or 0) >= self.config.importance_threshold
            ],
        )

    def recurring_themes(self, thread: ConversationThread) -> list[str]:
        counts = Counter(extract_key_terms(" ".join(f.content for f in thread.fragments)))
        themes = [(term, n) for term, n in counts.most_common() if n >= self.config.theme_min_count]
        return [term for term, _ in themes[: self.config.max_themes]]

    def assemble(self, thread: ConversationThread, now: datetime) -> EnhancedContext:
        return EnhancedContext(
            thread_id=thread.thread_id,
            primary_context=self.primary_context(thread.fragments),
            temporal_layers=self.temporal_layers(thread.fragments, now),
            summary=thread.summary,
            compression_level=thread.compression_level,
            priority_score=thread.priority_score,
            emotional_landscape=self.emotional_landscape(thread),
            consciousness_arc=self.consciousness_arc(thread),
            recurring_themes=self.recurring_themes(thread),
        )

    # ------------------------------------------------------------------
    # Prompt rendering
    # ------------------------------------------------------------------

    def render(self, thread: ConversationThread | None, limit: int = 10) -> str:
        """Context block for prompt building; empty string when there is nothing to add."""
        if thread is None or not thread.fragments or limit <= 0:
            return ""

        summary = thread.summary_fragment
        recent = [f for f in self.primary_context(thread.fragments, limit) if not f.is_summary]
        recent.reverse()

        lines = ["<CONTEXT>"]
        if summary is not None:
            lines.append(self._format(summary))
        lines.extend(self._format(f) for f in recent)
        lines.append("</CONTEXT>")
        return "\n".join(lines)

    def _format(self, fragment: MemoryFragment) -> str:
        content = fragment.content
        if len(content) > self.config.render_max_chars:
            content = content[: self.config.render_max_chars] + "..."
        return f'{ROLE_PREFIXES[fragment.role]}: "{content}"'
