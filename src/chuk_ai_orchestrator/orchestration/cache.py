# chuk_ai_orchestrator/orchestration/cache.py
"""
Response cache - skips backend calls for repeated, stable prompts.

Keyed by a sha256 digest of the normalized request. Time-sensitive,
very short and high-temperature prompts are never cached. Entries expire
by TTL and the least recently used 10% are dropped when the cache is over
capacity. Large or analysis-type entries can be written through to a
StateStore so they survive restarts.

Usage::

    cache = ResponseCache()
    if cache.should_cache(prompt, options):
        key = cache.make_key(prompt, "analysis", options)
        text = await cache.get(key)
        ...
        await cache.set(key, text, task_type="analysis", prompt=prompt)
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import re
from collections import OrderedDict

from pydantic import BaseModel, Field, ValidationError

from chuk_ai_orchestrator.config import DEFAULT_CACHE_MAX_ITEMS
from chuk_ai_orchestrator.exceptions import StorageError
from chuk_ai_orchestrator.models import CallOptions
from chuk_ai_orchestrator.persistence import StateStore, read_state
from chuk_ai_orchestrator.scheduling import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

CACHE_STATE_KEY = "response_cache"

HOUR = 3600.0

DEFAULT_NO_CACHE_PATTERNS: tuple[str, ...] = (
    r"current time",
    r"\btoday\b",
    r"\bnow\b",
    r"\blatest\b",
    r"\brecent",
    r"this (week|month|year)",
    r"\brandom",
    r"generate.*unique",
)


class CacheConfig(BaseModel):
    max_items: int = Field(default=DEFAULT_CACHE_MAX_ITEMS, gt=0)
    eviction_fraction: float = Field(default=0.1, gt=0.0, le=1.0)
    min_prompt_chars: int = 20
    max_temperature: float = 0.8
    long_ttl_seconds: float = 24 * HOUR
    medium_ttl_seconds: float = 6 * HOUR
    short_ttl_seconds: float = 1 * HOUR
    long_ttl_task_types: tuple[str, ...] = ("analysis", "review")
    medium_ttl_task_types: tuple[str, ...] = ("debug", "debugging", "security")
    medium_ttl_keywords: tuple[str, ...] = ("explain", "documentation")
    no_cache_patterns: tuple[str, ...] = DEFAULT_NO_CACHE_PATTERNS
    persist_min_chars: int = 1000


class CacheEntry(BaseModel):
    text: str
    expires_at: float
    task_type: str = "main"
    last_accessed: float = 0.0
    access_count: int = 0


class CacheStats(BaseModel):
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0
    total_requests: int = 0
    size: int = 0
    max_size: int = 0
    size_chars: int = 0

    @property
    def hit_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests


class ResponseCache:
    """In-memory LRU of backend responses with optional write-through."""

    def __init__(
        self,
        config: CacheConfig | None = None,
        scheduler: Scheduler | None = None,
        store: StateStore | None = None,
    ) -> None:
        self.config = config or CacheConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.store = store
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._no_cache = [re.compile(p, re.IGNORECASE) for p in self.config.no_cache_patterns]
        self._stats = {"hits": 0, "misses": 0, "evictions": 0, "expirations": 0, "total_requests": 0}

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    @staticmethod
    def make_key(prompt: str, task_type: str, options: CallOptions | None = None) -> str:
        options = options or CallOptions()
        key_data = {
            "prompt": prompt.strip(),
            "task_type": task_type,
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "complexity": options.complexity.value,
        }
        key_str = json.dumps(key_data, sort_keys=True)
        return hashlib.sha256(key_str.encode()).hexdigest()[:16]

    def should_cache(self, prompt: str, options: CallOptions | None = None) -> bool:
        """False for time-sensitive, random, very short or high-temperature requests."""
        options = options or CallOptions()
        if len(prompt) < self.config.min_prompt_chars:
            return False
        if options.temperature > self.config.max_temperature:
            return False
        return not any(pattern.search(prompt) for pattern in self._no_cache)

    def ttl_for(self, prompt: str, task_type: str) -> float:
        cfg = self.config
        if task_type in cfg.long_ttl_task_types:
            return cfg.long_ttl_seconds
        lowered = prompt.lower()
        if any(word in lowered for word in cfg.medium_ttl_keywords):
            return cfg.medium_ttl_seconds
        if task_type in cfg.medium_ttl_task_types:
            return cfg.medium_ttl_seconds
        return cfg.short_ttl_seconds

    # ------------------------------------------------------------------
    # Lookup / store
    # ------------------------------------------------------------------

    async def get(self, key: str) -> str | None:
        self._stats["total_requests"] += 1
        now = self.scheduler.now()

        entry = self._entries.get(key)
        if entry is not None and entry.expires_at <= now:
            del self._entries[key]
            self._stats["expirations"] += 1
            entry = None

        if entry is None and self.store is not None:
            entry = await self._read_persistent(key, now)
            if entry is not None:
                self._entries[key] = entry

        if entry is None:
            self._stats["misses"] += 1
            logger.debug("Cache miss %s", key)
            return None

        self._entries.move_to_end(key)
        entry.last_accessed = now
        entry.access_count += 1
        self._stats["hits"] += 1
        logger.debug("Cache hit %s", key)
        return entry.text

    async def set(self, key: str, text: str, *, task_type: str = "main", prompt: str = "") -> None:
        now = self.scheduler.now()
        ttl = self.ttl_for(prompt, task_type)
        entry = CacheEntry(text=text, expires_at=now + ttl, task_type=task_type, last_accessed=now)
        self._entries[key] = entry
        self._entries.move_to_end(key)

        if len(self._entries) > self.config.max_items:
            self._evict_lru()

        if self.store is not None and (
            len(text) > self.config.persist_min_chars or task_type in self.config.long_ttl_task_types
        ):
            await self._write_persistent(key, entry)

        logger.debug("Cache set %s (task=%s, ttl=%.0fs)", key, task_type, ttl)

    def _evict_lru(self) -> int:
        count = math.ceil(self.config.max_items * self.config.eviction_fraction)
        evicted = 0
        while self._entries and evicted < count:
            self._entries.popitem(last=False)
            evicted += 1
        self._stats["evictions"] += evicted
        logger.debug("Cache LRU eviction dropped %d entries", evicted)
        return evicted

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _read_persistent(self, key: str, now: float) -> CacheEntry | None:
        data = await read_state(self.store, CACHE_STATE_KEY)
        raw = (data or {}).get(key)
        if raw is None:
            return None
        try:
            entry = CacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.warning("Discarding corrupt persisted cache entry %s: %s", key, e)
            return None
        if entry.expires_at <= now:
            return None
        return entry

    async def _write_persistent(self, key: str, entry: CacheEntry) -> None:
        try:
            data = await read_state(self.store, CACHE_STATE_KEY) or {}
            data[key] = entry.model_dump(mode="json")
            await self.store.write(CACHE_STATE_KEY, data)
        except StorageError as e:
            logger.error("Persistent cache write failed for %s: %s", key, e)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    async def cleanup(self) -> int:
        """Drop expired entries from memory and the persistent store. Returns count."""
        now = self.scheduler.now()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        count = len(expired)

        if self.store is not None:
            data = await read_state(self.store, CACHE_STATE_KEY) or {}
            stale = [k for k, raw in data.items() if not isinstance(raw, dict) or raw.get("expires_at", 0) <= now]
            if stale:
                for k in stale:
                    del data[k]
                try:
                    await self.store.write(CACHE_STATE_KEY, data)
                except StorageError as e:
                    logger.error("Persistent cache cleanup failed: %s", e)
                count += len(stale)

        self._stats["expirations"] += count
        if count:
            logger.debug("Cache cleanup removed %d expired entries", count)
        return count

    async def clear(self) -> None:
        self._entries.clear()
        if self.store is not None:
            try:
                await self.store.write(CACHE_STATE_KEY, {})
            except StorageError as e:
                logger.error("Failed to clear persistent cache: %s", e)
        logger.info("Response cache cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> CacheStats:
        return CacheStats(
            **self._stats,
            size=len(self._entries),
            max_size=self.config.max_items,
            size_chars=sum(len(entry.text) for entry in self._entries.values()),
        )
