# chuk_ai_orchestrator/memory/maintenance.py
"""
Periodic maintenance: priority decay, thread eviction and cache cleanup.

Runs as a background asyncio task until its shutdown event is set.

Usage::

    loop = MaintenanceLoop(store, cache=cache)
    loop.start()
    ...
    await loop.stop()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from .store import MemoryStore

if TYPE_CHECKING:
    from chuk_ai_orchestrator.orchestration.cache import ResponseCache

logger = logging.getLogger(__name__)


class MaintenanceReport(BaseModel):
    threads_evicted: int = 0
    cache_expired: int = 0


class MaintenanceLoop:
    """Run ``run_once`` every ``interval`` seconds."""

    def __init__(
        self,
        store: MemoryStore,
        cache: ResponseCache | None = None,
        interval: float | None = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.interval = interval if interval is not None else store.config.maintenance_interval_seconds
        self.runs = 0
        self._shutdown = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> MaintenanceReport:
        report = MaintenanceReport(threads_evicted=self.store.run_maintenance())
        if self.cache is not None:
            report.cache_expired = await self.cache.cleanup()
        self.runs += 1
        logger.debug(
            "Maintenance pass %d: %d threads evicted, %d cache entries expired",
            self.runs,
            report.threads_evicted,
            report.cache_expired,
        )
        return report

    async def run(self) -> None:
        """Loop until ``stop`` is called. The first pass runs after one interval."""
        logger.info("Memory maintenance started (every %.0fs)", self.interval)
        while not self._shutdown.is_set():
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self.interval)
                break
            except TimeoutError:
                pass
            try:
                await self.run_once()
            except Exception as e:
                logger.error("Memory maintenance failed: %s", e)
        logger.info("Memory maintenance stopped")

    def start(self) -> asyncio.Task[None]:
        if self.running:
            return self._task
        self._shutdown.clear()
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._shutdown.set()
        if self._task is not None:
            await self._task
            self._task = None
