# chuk_ai_orchestrator/orchestration/metrics.py
"""Rolling per-operation duration samples for status reporting."""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_WINDOW = 100


class OperationStats(BaseModel):
    count: int
    avg_duration_ms: float
    min_duration_ms: float
    max_duration_ms: float
    failures: int = 0


class PerformanceMonitor:
    """Keeps the last ``window`` duration samples per operation name."""

    def __init__(self, window: int = DEFAULT_SAMPLE_WINDOW) -> None:
        self.window = window
        self._samples: dict[str, deque[tuple[float, bool]]] = {}

    def record(self, operation: str, duration_ms: float, success: bool = True) -> None:
        samples = self._samples.get(operation)
        if samples is None:
            samples = self._samples[operation] = deque(maxlen=self.window)
        samples.append((duration_ms, success))

    @contextmanager
    def timer(self, operation: str) -> Iterator[None]:
        """Record the wrapped block's duration; an exception counts as a failure."""
        start = time.perf_counter()
        success = False
        try:
            yield
            success = True
        finally:
            self.record(operation, (time.perf_counter() - start) * 1000, success)

    def get_stats(self, operation: str) -> OperationStats | None:
        samples = self._samples.get(operation)
        if not samples:
            return None
        durations = [d for d, _ in samples]
        return OperationStats(
            count=len(durations),
            avg_duration_ms=sum(durations) / len(durations),
            min_duration_ms=min(durations),
            max_duration_ms=max(durations),
            failures=sum(1 for _, ok in samples if not ok),
        )

    def all_stats(self) -> dict[str, OperationStats]:
        return {op: stats for op in self._samples if (stats := self.get_stats(op)) is not None}

    def reset(self) -> None:
        self._samples.clear()
