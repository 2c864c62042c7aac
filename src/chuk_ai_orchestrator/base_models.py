# chuk_ai_orchestrator/base_models.py
"""Base model with dict-style access for status snapshots."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class DictCompatModel(BaseModel):
    """Base for snapshot models that tool handlers read like plain dicts.

    Health and status reports used to be handed out as raw dicts; this keeps
    ``snapshot["success_rate"]``, ``snapshot.get("x", default)`` and
    ``"key" in snapshot`` working on the typed models.
    """

    def __getitem__(self, key: str) -> Any:
        if key not in type(self).model_fields:
            raise KeyError(key)
        return getattr(self, key)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return key in type(self).model_fields
        return False

    def get(self, key: str, default: Any = None) -> Any:
        if key in type(self).model_fields:
            return getattr(self, key)
        return default

    def __eq__(self, other: object) -> bool:
        if isinstance(other, dict):
            return self.model_dump() == other
        return super().__eq__(other)
