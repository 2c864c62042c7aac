# chuk_ai_orchestrator/orchestration/selector.py
"""
Selector - picks one backend per request.

Scoring blends health, speed, task history and how closely the backend's
declared complexity matches the request. Deterministic for a fixed catalog,
health state and clock.

Usage::

    selector = Selector(catalog, tracker)
    backend_id = selector.select("frontend", ComplexityHint.COMPLEX, prompt)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.models import ComplexityHint

from .catalog import ModelCatalog
from .complexity import TaskComplexityAnalyzer
from .health import HealthTracker

logger = logging.getLogger(__name__)


class SelectorConfig(BaseModel):
    """Scoring weights. Failure ceiling excludes backends with more recent failures."""

    success_weight: float = 0.4
    speed_weight: float = 0.3
    accuracy_weight: float = 0.2
    complexity_weight: float = 0.1
    failure_penalty: float = 0.1
    max_consecutive_failures: int = Field(default=3, ge=0)
    load_balance_cap: float = Field(default=0.05, ge=0.0)
    load_balance_window_seconds: float = Field(default=60.0, gt=0.0)
    reference_latency_ms: float = Field(default=1000.0, gt=0.0)


def hint_weight(hint: ComplexityHint | str | None) -> int:
    """Numeric weight of a complexity hint; unknown names count as medium."""
    if isinstance(hint, ComplexityHint):
        return hint.weight
    try:
        return ComplexityHint(str(hint).lower()).weight
    except ValueError:
        return ComplexityHint.MEDIUM.weight


class Selector:
    """Scores eligible candidates and returns the best backend id."""

    def __init__(
        self,
        catalog: ModelCatalog,
        health: HealthTracker,
        config: SelectorConfig | None = None,
        analyzer: TaskComplexityAnalyzer | None = None,
    ) -> None:
        self.catalog = catalog
        self.health = health
        self.config = config or SelectorConfig()
        self.analyzer = analyzer or TaskComplexityAnalyzer()

    def effective_complexity(self, hint: ComplexityHint | str | None, prompt: str) -> int:
        return max(hint_weight(hint), self.analyzer.analyze(prompt))

    def is_eligible(self, backend_id: str) -> bool:
        record = self.health.get(backend_id)
        return record.available and record.consecutive_failures <= self.config.max_consecutive_failures

    def score(self, backend_id: str, task_type: str, complexity: int) -> float:
        cfg = self.config
        record = self.health.get(backend_id)
        declared = self.catalog.profile(backend_id).declared_complexity

        complexity_match = 1.0 - abs(declared - complexity) / 4.0
        speed = cfg.reference_latency_ms / record.avg_latency_ms

        if record.last_used is None:
            load_bonus = cfg.load_balance_cap
        else:
            idle = max(0.0, self.health.scheduler.now() - record.last_used)
            load_bonus = min(idle / cfg.load_balance_window_seconds, cfg.load_balance_cap)

        return (
            cfg.success_weight * record.success_rate
            + cfg.speed_weight * speed
            + cfg.accuracy_weight * record.task_accuracy(task_type)
            + cfg.complexity_weight * complexity_match
            - cfg.failure_penalty * record.consecutive_failures
            + load_bonus
        )

    def select(
        self,
        task_type: str,
        complexity_hint: ComplexityHint | str | None = ComplexityHint.MEDIUM,
        prompt: str = "",
    ) -> str:
        """
        Return the backend to try first for this request.

        Halves the chosen backend's consecutive-failure counter. If no
        candidate is eligible, the most capable candidate is chosen
        regardless of health.
        """
        complexity = self.effective_complexity(complexity_hint, prompt)
        candidates = self.catalog.candidates(task_type, complexity)

        best_id: str | None = None
        best_score = float("-inf")
        for backend_id in candidates:
            if not self.is_eligible(backend_id):
                continue
            score = self.score(backend_id, task_type, complexity)
            logger.debug("Score %s for %s/%d: %.4f", backend_id, task_type, complexity, score)
            if score > best_score:
                best_id, best_score = backend_id, score

        if best_id is None:
            best_id = self.catalog.most_capable(candidates)
            logger.warning(
                "No healthy candidate for %s (complexity %d); using most capable: %s",
                task_type,
                complexity,
                best_id,
            )

        self.health.halve_failures(best_id)

        return best_id
