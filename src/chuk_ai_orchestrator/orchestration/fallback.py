# chuk_ai_orchestrator/orchestration/fallback.py
"""Ordered alternates to try after the primary backend fails."""

from __future__ import annotations

from collections.abc import Collection

from .catalog import ModelCatalog
from .health import HealthTracker

DEFAULT_MAX_FALLBACKS = 3


class FallbackChain:
    """
    Ranks every catalog backend not yet excluded by
    ``success_rate + avg_accuracy`` (descending, stable on catalog order)
    and keeps the first ``max_fallbacks``.
    """

    def __init__(
        self,
        catalog: ModelCatalog,
        health: HealthTracker,
        max_fallbacks: int = DEFAULT_MAX_FALLBACKS,
    ) -> None:
        self.catalog = catalog
        self.health = health
        self.max_fallbacks = max_fallbacks

    def _rank(self, backend_id: str) -> float:
        record = self.health.get(backend_id)
        return record.success_rate + record.avg_accuracy

    def next(self, exclude: Collection[str] = ()) -> list[str]:
        remaining = [b for b in self.catalog.backend_ids if b not in exclude]
        remaining.sort(key=self._rank, reverse=True)
        return remaining[: self.max_fallbacks]
