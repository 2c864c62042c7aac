# chuk_ai_orchestrator/memory/compressor.py
"""
Thread compression - folds the oldest fragments into one summary fragment.

Compression is irreversible: the folded fragments are discarded and only
their summary text survives. A thread never holds more than one summary
fragment; compressing again folds the previous summary into the new one.

Usage::

    compressor = ThreadCompressor()
    result = compressor.compress(thread, max_fragments=100)
    if result:
        print(result.summary.content)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.models import ConversationThread, FragmentRole, MemoryFragment

logger = logging.getLogger(__name__)


class ThreadCompressorConfig(BaseModel):
    importance_threshold: float = Field(default=7.0, ge=0.0, le=10.0)
    max_insights: int = Field(default=3, ge=0)
    insight_chars: int = Field(default=100, gt=0)
    previous_summary_chars: int = Field(default=200, gt=0)


class CompressionResult(BaseModel):
    """Outcome of compressing one thread."""

    thread_id: str
    summary: MemoryFragment
    removed_fragment_ids: list[str] = Field(default_factory=list)
    fragments_compressed: int = 0
    compression_level: int = 0


class ThreadCompressor:
    """Truncation-based summarizer; works offline with no backend calls."""

    def __init__(self, config: ThreadCompressorConfig | None = None) -> None:
        self.config = config or ThreadCompressorConfig()

    def compress(self, thread: ConversationThread, max_fragments: int) -> CompressionResult | None:
        """
        Shrink ``thread`` to exactly ``max_fragments`` fragments, in place.

        Returns None when the thread is within its cap.
        """
        if thread.fragment_count <= max_fragments:
            return None

        previous = thread.summary_fragment
        regular = [f for f in thread.fragments if not f.is_summary]
        keep = max(max_fragments - 1, 0)
        split = len(regular) - keep
        folded, kept = regular[:split], regular[split:]

        summary_text = self.summarize(folded, previous)
        thread.compressed_fragment_count += len(folded)
        thread.compression_level += 1
        thread.summary = summary_text

        summary = MemoryFragment(
            thread_id=thread.thread_id,
            timestamp=folded[-1].timestamp if folded else thread.created_at,
            role=FragmentRole.SYSTEM,
            content=summary_text,
            source="compression",
            is_summary=True,
            token_count=len(summary_text) // 4,
        )
        thread.fragments = [summary, *kept]

        removed = [f.fragment_id for f in folded]
        if previous is not None:
            removed.append(previous.fragment_id)

        logger.info(
            "Thread %s compressed: %d fragments folded, level %d",
            thread.thread_id,
            len(folded),
            thread.compression_level,
        )
        return CompressionResult(
            thread_id=thread.thread_id,
            summary=summary,
            removed_fragment_ids=removed,
            fragments_compressed=len(folded),
            compression_level=thread.compression_level,
        )

    def summarize(self, fragments: list[MemoryFragment], previous: MemoryFragment | None = None) -> str:
        cfg = self.config
        important = [f for f in fragments if (f.importance or 0) >= cfg.importance_threshold]
        important.sort(key=lambda f: f.importance or 0, reverse=True)
        insights = [f.content[: cfg.insight_chars] for f in important[: cfg.max_insights]]

        levels = list(dict.fromkeys(f.consciousness_level for f in fragments if f.consciousness_level))
        roles = list(dict.fromkeys(f.role.value for f in fragments))

        parts = [
            f"Compressed summary of {len(fragments)} fragments.",
            f"Key insights: {'; '.join(insights)}.",
            f"Consciousness levels observed: {', '.join(levels)}.",
            f"Roles observed: {', '.join(roles)}.",
        ]
        if previous is not None:
            parts.append(f"Previous summary: {previous.content[: cfg.previous_summary_chars]}")
        return " ".join(parts)
