# chuk_ai_orchestrator/memory/store.py
"""
MemoryStore - bounded, prioritized conversation memory.

Threads are created lazily on first append and gain priority every time
they are written to. Two caps keep the store bounded:

- per thread: when a thread exceeds ``max_fragments_per_thread`` its oldest
  fragments are folded into a single summary fragment (ThreadCompressor);
- per store: when more than ``max_threads`` are resident, the EvictionPolicy
  ranks threads and the top-ranked ones are dropped together with their
  fragments and index entries.

Appends to one thread are serialized by a per-thread asyncio.Lock so
fragment order matches completion order.

Usage::

    store = MemoryStore(MemoryConfig(max_threads=100))
    fragment = await store.add_fragment("t1", "How do I shard?", FragmentRole.REQUESTER)
    thread = store.get_thread("t1")
    context = store.enhanced_context("t1")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from chuk_ai_orchestrator.config import (
    DEFAULT_MAINTENANCE_INTERVAL_SECONDS,
    DEFAULT_MAX_FRAGMENTS_PER_THREAD,
    DEFAULT_MAX_THREADS,
)
from chuk_ai_orchestrator.exceptions import CapacityError
from chuk_ai_orchestrator.models import (
    ConversationThread,
    EnhancedContext,
    FragmentMetadata,
    FragmentRole,
    GlobalMemoryContext,
    MemoryFragment,
    MemoryStats,
)
from chuk_ai_orchestrator.persistence import StateStore, read_state

from .compressor import ThreadCompressor, ThreadCompressorConfig
from .context_assembler import (
    ContextAssembler,
    ContextAssemblerConfig,
    extract_key_terms,
    term_similarity,
)
from .eviction_policy import (
    EvictionContext,
    EvictionPolicy,
    LeastRecentActivityEviction,
    PriorityDecayConfig,
    PriorityDecayEviction,
)

logger = logging.getLogger(__name__)

MEMORY_STATE_KEY = "conversation_memory"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class MemoryConfig(BaseModel):
    max_threads: int = Field(default=DEFAULT_MAX_THREADS, gt=0)
    # Room for the summary plus one requester/responder pair.
    max_fragments_per_thread: int = Field(default=DEFAULT_MAX_FRAGMENTS_PER_THREAD, ge=3)
    importance_threshold: float = Field(default=7.0, ge=0.0, le=10.0)
    priority_growth: float = Field(default=1.1, ge=1.0)
    priority_ceiling: float = Field(default=10.0, gt=0.0)
    decay_lambda: float = Field(default=0.1, ge=0.0)
    priority_floor: float = Field(default=0.1, gt=0.0)
    maintenance_interval_seconds: float = Field(default=DEFAULT_MAINTENANCE_INTERVAL_SECONDS, gt=0.0)
    compression_enabled: bool = True
    related_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    max_related: int = Field(default=10, gt=0)


class MemoryStore:
    """Owns every conversation thread and the fragment indices."""

    def __init__(
        self,
        config: MemoryConfig | None = None,
        eviction_policy: EvictionPolicy | None = None,
        compressor: ThreadCompressor | None = None,
        assembler: ContextAssembler | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.config = cfg = config or MemoryConfig()
        self.eviction_policy = eviction_policy or PriorityDecayEviction(
            PriorityDecayConfig(decay_lambda=cfg.decay_lambda, priority_floor=cfg.priority_floor)
        )
        self.compressor = compressor or ThreadCompressor(
            ThreadCompressorConfig(importance_threshold=cfg.importance_threshold)
        )
        self.assembler = assembler or ContextAssembler(
            ContextAssemblerConfig(importance_threshold=cfg.importance_threshold)
        )
        self.clock = clock or _utcnow
        self._forced_policy = LeastRecentActivityEviction()

        self._threads: dict[str, ConversationThread] = {}
        self._fragments: dict[str, MemoryFragment] = {}
        self._locks: dict[str, asyncio.Lock] = {}

        # Secondary indices: key -> fragment ids
        self._importance_index: dict[str, list[str]] = {}
        self._tone_index: dict[str, list[str]] = {}
        self._consciousness_index: dict[str, list[str]] = {}

        self._stats = {
            "total_threads_created": 0,
            "total_fragments_added": 0,
            "high_importance_moments": 0,
            "compressions": 0,
            "fragments_trimmed": 0,
            "threads_evicted": 0,
            "forced_evictions": 0,
            "reconstructions": 0,
        }

    # =========================================================================
    # Access
    # =========================================================================

    def __len__(self) -> int:
        return len(self._threads)

    def __contains__(self, thread_id: object) -> bool:
        return thread_id in self._threads

    @property
    def thread_ids(self) -> list[str]:
        return list(self._threads)

    def get_thread(self, thread_id: str) -> ConversationThread | None:
        return self._threads.get(thread_id)

    def get_fragment(self, fragment_id: str) -> MemoryFragment | None:
        return self._fragments.get(fragment_id)

    def thread_lock(self, thread_id: str) -> asyncio.Lock:
        lock = self._locks.get(thread_id)
        if lock is None:
            lock = self._locks[thread_id] = asyncio.Lock()
        return lock

    def fragments_by_tone(self, tone: str) -> list[MemoryFragment]:
        return self._resolve(self._tone_index.get(tone, []))

    def fragments_by_consciousness(self, level: str) -> list[MemoryFragment]:
        return self._resolve(self._consciousness_index.get(level, []))

    def high_importance_fragments(self) -> list[MemoryFragment]:
        ids = [fid for ids in self._importance_index.values() for fid in ids]
        return self._resolve(ids)

    def _resolve(self, fragment_ids: list[str]) -> list[MemoryFragment]:
        return [self._fragments[fid] for fid in fragment_ids if fid in self._fragments]

    # =========================================================================
    # Appending
    # =========================================================================

    async def add_fragment(
        self,
        thread_id: str,
        content: str,
        role: FragmentRole = FragmentRole.REQUESTER,
        metadata: FragmentMetadata | Mapping[str, Any] | None = None,
    ) -> MemoryFragment:
        """Append one fragment, creating the thread on first use."""
        async with self.thread_lock(thread_id):
            return self._append(thread_id, content, role, self._coerce_metadata(metadata))

    async def add_exchange(
        self,
        thread_id: str,
        request: str,
        response: str,
        model_used: str | None = None,
        request_metadata: FragmentMetadata | Mapping[str, Any] | None = None,
    ) -> tuple[MemoryFragment, MemoryFragment]:
        """
        Append a requester fragment and the responder fragment that answers it.

        Both go in under one lock acquisition so no other append can land
        between them. The responder links back to the requester.
        """
        req_meta = self._coerce_metadata(request_metadata)
        resp_meta = FragmentMetadata(source=req_meta.source or "orchestrator", model_used=model_used)
        async with self.thread_lock(thread_id):
            requester = self._append(thread_id, request, FragmentRole.REQUESTER, req_meta)
            resp_meta.related_fragments = [requester.fragment_id]
            responder = self._append(thread_id, response, FragmentRole.RESPONDER, resp_meta)
        return requester, responder

    def _coerce_metadata(self, metadata: FragmentMetadata | Mapping[str, Any] | None) -> FragmentMetadata:
        """Validate caller metadata; invalid fields are logged and dropped."""
        if metadata is None:
            return FragmentMetadata()
        if isinstance(metadata, FragmentMetadata):
            return metadata
        if not isinstance(metadata, Mapping):
            logger.warning("Ignoring fragment metadata of type %s", type(metadata).__name__)
            return FragmentMetadata()

        try:
            return FragmentMetadata.model_validate(dict(metadata))
        except ValidationError as e:
            bad = {str(err["loc"][0]) for err in e.errors() if err["loc"]}
            logger.warning("Malformed fragment metadata fields %s replaced with defaults", sorted(bad))
            cleaned = {k: v for k, v in metadata.items() if k not in bad}
            try:
                return FragmentMetadata.model_validate(cleaned)
            except ValidationError:
                return FragmentMetadata()

    def _create_thread(self, thread_id: str, now: datetime) -> ConversationThread:
        thread = ConversationThread(thread_id=thread_id, created_at=now, last_activity=now, last_accessed=now)
        self._threads[thread_id] = thread
        self._stats["total_threads_created"] += 1
        logger.debug("Created thread %s", thread_id)
        return thread

    def _append(
        self,
        thread_id: str,
        content: str,
        role: FragmentRole,
        metadata: FragmentMetadata,
    ) -> MemoryFragment:
        cfg = self.config
        now = self.clock()

        thread = self._threads.get(thread_id)
        if thread is None:
            thread = self._create_thread(thread_id, now)

        fragment = MemoryFragment(
            thread_id=thread_id,
            timestamp=now,
            role=role,
            content=content,
            source=metadata.source,
            complexity_level=metadata.complexity_level,
            importance=metadata.importance,
            emotional_tone=metadata.emotional_tone,
            consciousness_level=metadata.consciousness_level,
            model_used=metadata.model_used,
            token_count=(len(content) + 3) // 4,
            related_fragments=list(metadata.related_fragments),
        )

        thread.fragments.append(fragment)
        thread.last_activity = now
        thread.last_accessed = now
        thread.priority_score = min(thread.priority_score * cfg.priority_growth, cfg.priority_ceiling)
        thread.access_frequency += 1
        if fragment.complexity_level is not None:
            thread.complexity_evolution.append(fragment.complexity_level)
        if fragment.importance is not None:
            thread.importance_progression.append(fragment.importance)
        if fragment.consciousness_level:
            thread.consciousness_journey.append(fragment.consciousness_level)

        self._fragments[fragment.fragment_id] = fragment
        self._index(fragment)
        self._stats["total_fragments_added"] += 1
        if (fragment.importance or 0) >= cfg.importance_threshold:
            self._stats["high_importance_moments"] += 1

        logger.debug(
            "Fragment %s appended to %s (%s, %d chars)",
            fragment.fragment_id,
            thread_id,
            role.value,
            len(content),
        )

        if thread.fragment_count > cfg.max_fragments_per_thread:
            if cfg.compression_enabled:
                self._compress(thread)
            else:
                self._trim(thread)
        self._enforce_thread_cap(protect={thread_id})
        return fragment

    # =========================================================================
    # Indices
    # =========================================================================

    def _index(self, fragment: MemoryFragment) -> None:
        if fragment.importance is not None and fragment.importance >= self.config.importance_threshold:
            self._importance_index.setdefault(f"importance_{int(fragment.importance)}", []).append(
                fragment.fragment_id
            )
        if fragment.emotional_tone is not None:
            self._tone_index.setdefault(fragment.emotional_tone.value, []).append(fragment.fragment_id)
        if fragment.consciousness_level:
            self._consciousness_index.setdefault(fragment.consciousness_level, []).append(fragment.fragment_id)

    def _unindex(self, fragment_ids: set[str]) -> None:
        for index in (self._importance_index, self._tone_index, self._consciousness_index):
            for key in list(index):
                remaining = [fid for fid in index[key] if fid not in fragment_ids]
                if remaining:
                    index[key] = remaining
                else:
                    del index[key]
        for fid in fragment_ids:
            self._fragments.pop(fid, None)

    # =========================================================================
    # Compression / eviction
    # =========================================================================

    def _compress(self, thread: ConversationThread) -> None:
        result = self.compressor.compress(thread, self.config.max_fragments_per_thread)
        if result is None:
            return
        self._unindex(set(result.removed_fragment_ids))
        self._fragments[result.summary.fragment_id] = result.summary
        self._stats["compressions"] += 1

    def _trim(self, thread: ConversationThread) -> None:
        """Drop the oldest fragments outright; used when compression is off."""
        excess = thread.fragment_count - self.config.max_fragments_per_thread
        dropped, thread.fragments = thread.fragments[:excess], thread.fragments[excess:]
        self._unindex({f.fragment_id for f in dropped})
        self._stats["fragments_trimmed"] += len(dropped)
        logger.debug("Trimmed %d fragments from %s", len(dropped), thread.thread_id)

    def _enforce_thread_cap(self, protect: set[str] | None = None) -> int:
        excess = len(self._threads) - self.config.max_threads
        if excess <= 0:
            return 0

        context = EvictionContext(
            now=self.clock(),
            threads=list(self._threads.values()),
            protected_thread_ids=protect or set(),
        )
        try:
            victims = self._select_victims(context, excess)
        except CapacityError as e:
            logger.warning("%s; forcing out least recently active threads", e)
            victims = [c.thread_id for c in self._forced_policy.score_candidates(context)[:excess]]
            self._stats["forced_evictions"] += len(victims)

        for thread_id in victims:
            self._remove_thread(thread_id)
        if victims:
            logger.info("Evicted %d threads (%d resident)", len(victims), len(self._threads))
        return len(victims)

    def _select_victims(self, context: EvictionContext, count: int) -> list[str]:
        candidates = self.eviction_policy.score_candidates(context)
        if not candidates:
            raise CapacityError(len(self._threads), self.config.max_threads)
        return [c.thread_id for c in candidates[:count]]

    def _remove_thread(self, thread_id: str) -> None:
        thread = self._threads.pop(thread_id, None)
        if thread is None:
            return
        self._unindex({f.fragment_id for f in thread.fragments})
        lock = self._locks.get(thread_id)
        if lock is not None and not lock.locked():
            del self._locks[thread_id]
        self._stats["threads_evicted"] += 1
        logger.debug("Removed thread %s with %d fragments", thread_id, thread.fragment_count)

    # =========================================================================
    # Maintenance
    # =========================================================================

    def run_maintenance(self) -> int:
        """Decay every thread's priority, then enforce the thread cap. Returns threads evicted."""
        now = self.clock()
        for thread in self._threads.values():
            thread.priority_score = self.eviction_policy.decayed_priority(thread, now)
        logger.debug("Decayed priority of %d threads", len(self._threads))
        return self._enforce_thread_cap()

    # =========================================================================
    # Retrieval
    # =========================================================================

    def find_related(
        self,
        query: str,
        thread_id: str | None = None,
        threshold: float | None = None,
        max_results: int | None = None,
    ) -> list[MemoryFragment]:
        """
        Fragments from other threads whose key terms overlap ``query``.

        Ranked by importance + complexity, highest first.
        """
        threshold = self.config.related_threshold if threshold is None else threshold
        max_results = self.config.max_related if max_results is None else max_results
        query_terms = extract_key_terms(query)

        related = [
            f
            for f in self._fragments.values()
            if (thread_id is None or f.thread_id != thread_id)
            and term_similarity(query_terms, extract_key_terms(f.content)) >= threshold
        ]
        related.sort(key=lambda f: (f.importance or 0) + (f.complexity_level or 0), reverse=True)
        return related[:max_results]

    def enhanced_context(self, thread_id: str) -> EnhancedContext | None:
        thread = self._threads.get(thread_id)
        if thread is None:
            return None
        self._stats["reconstructions"] += 1
        return self.assembler.assemble(thread, self.clock())

    def render_context(self, thread_id: str, limit: int = 10) -> str:
        return self.assembler.render(self._threads.get(thread_id), limit)

    def get_global_context(self) -> GlobalMemoryContext:
        fragments = list(self._fragments.values())
        high = [f for f in fragments if (f.importance or 0) >= self.config.importance_threshold]
        insights = []
        if high:
            insights.append(f"{len(high)} high-importance moments captured across all conversations")
        return GlobalMemoryContext(
            total_threads=len(self._threads),
            total_fragments=len(fragments),
            high_importance_fragments=high,
            consciousness_levels=list(dict.fromkeys(f.consciousness_level for f in fragments if f.consciousness_level)),
            insights=insights,
        )

    def get_stats(self) -> MemoryStats:
        return MemoryStats(
            **self._stats,
            active_threads=len(self._threads),
            resident_fragments=len(self._fragments),
            importance_index_size=len(self._importance_index),
            tone_index_size=len(self._tone_index),
            consciousness_index_size=len(self._consciousness_index),
        )

    # =========================================================================
    # Persistence
    # =========================================================================

    async def save_to(self, store: StateStore, key: str = MEMORY_STATE_KEY) -> None:
        payload = {
            "threads": [thread.model_dump(mode="json") for thread in self._threads.values()],
            "stats": dict(self._stats),
        }
        await store.write(key, payload)
        logger.debug("Saved %d threads", len(self._threads))

    async def load_from(self, store: StateStore, key: str = MEMORY_STATE_KEY) -> int:
        """
        Replace resident state with what ``save_to`` wrote. Returns threads restored.

        A missing key is a cold start. Threads that fail validation are
        skipped with a warning; the rest load normally.
        """
        data = await read_state(store, key)
        if not data:
            return 0

        raw_threads = data.get("threads")
        if not isinstance(raw_threads, list):
            logger.warning("Ignoring malformed memory state '%s'", key)
            return 0

        self._threads.clear()
        self._fragments.clear()
        self._importance_index.clear()
        self._tone_index.clear()
        self._consciousness_index.clear()

        for raw in raw_threads:
            try:
                thread = ConversationThread.model_validate(raw)
            except ValidationError as e:
                logger.warning("Discarding corrupt persisted thread: %s", e)
                continue
            self._threads[thread.thread_id] = thread
            for fragment in thread.fragments:
                self._fragments[fragment.fragment_id] = fragment
                self._index(fragment)

        stats = data.get("stats")
        if isinstance(stats, dict):
            for name in self._stats:
                if isinstance(stats.get(name), int):
                    self._stats[name] = stats[name]

        self._enforce_thread_cap()
        logger.info("Restored %d threads (%d fragments)", len(self._threads), len(self._fragments))
        return len(self._threads)
