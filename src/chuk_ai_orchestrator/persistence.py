# chuk_ai_orchestrator/persistence.py
"""
State stores for memory, health and cache persistence.

Both stores speak plain JSON-compatible dicts; callers own (de)serialization
through ``model_dump(mode="json")`` / ``model_validate``.

Usage::

    store = JsonFileStateStore("~/.chuk_orchestrator")
    await memory.save_to(store)
    ...
    await memory.load_from(store)
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from chuk_ai_orchestrator.exceptions import StorageError

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


@runtime_checkable
class StateStore(Protocol):
    """Async key/value store for JSON-compatible state blobs."""

    async def read(self, key: str) -> dict[str, Any] | None:
        """Return the stored blob, or None if the key was never written."""
        ...

    async def write(self, key: str, value: dict[str, Any]) -> None: ...


class InMemoryStateStore(BaseModel):
    """
    Non-persistent store for tests and development.

    Values are round-tripped through JSON so callers see the same shapes
    a file-backed store would hand back.
    """

    blobs: dict[str, str] = Field(default_factory=dict)

    async def read(self, key: str) -> dict[str, Any] | None:
        raw = self.blobs.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def write(self, key: str, value: dict[str, Any]) -> None:
        try:
            self.blobs[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"State for '{key}' is not JSON-serializable: {e}") from e

    def clear(self) -> None:
        self.blobs.clear()


class JsonFileStateStore:
    """One JSON file per key under ``base_dir``."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir).expanduser()

    def path_for(self, key: str) -> Path:
        return self.base_dir / f"{_SAFE_KEY.sub('_', key)}.json"

    async def read(self, key: str) -> dict[str, Any] | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt state file {path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"State file {path} does not hold a JSON object")
        return data

    async def write(self, key: str, value: dict[str, Any]) -> None:
        path = self.path_for(key)
        try:
            payload = json.dumps(value, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageError(f"State for '{key}' is not JSON-serializable: {e}") from e

        def _write() -> None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(payload, encoding="utf-8")
            tmp.replace(path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
        logger.debug("Wrote state '%s' to %s", key, path)


async def read_state(store: StateStore, key: str) -> dict[str, Any] | None:
    """Read ``key``, treating an unreadable blob as absent (cold start)."""
    try:
        return await store.read(key)
    except StorageError as e:
        logger.warning("Ignoring unreadable state '%s': %s", key, e)
        return None
