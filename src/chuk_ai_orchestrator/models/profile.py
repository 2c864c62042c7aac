# chuk_ai_orchestrator/models/profile.py
"""Static backend capability profiles."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ModelCapabilities(BaseModel):
    """Declared capability tags for a backend. Loaded once, never mutated."""

    model_config = ConfigDict(frozen=True)

    reasoning_depth: int = Field(default=5, ge=1, le=10)
    creativity_level: int = Field(default=5, ge=1, le=10)
    analytical_precision: int = Field(default=5, ge=1, le=10)
    response_speed: int = Field(default=5, ge=1, le=10)
    context_window: int = Field(default=128_000, ge=0)
    multimodal: bool = False

    @property
    def supports_large_context(self) -> bool:
        return self.context_window >= 1_000_000


class ModelProfile(BaseModel):
    """
    Immutable description of one remote inference backend.

    ``declared_complexity`` (1-4) is the complexity class this backend is
    best suited for; the Selector compares it against the effective
    complexity of a request.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_id: str = Field(..., description="Backend identifier sent to the provider")
    provider: str = Field(default="openrouter")
    display_name: str = Field(default="")
    capabilities: ModelCapabilities = Field(default_factory=ModelCapabilities)
    declared_complexity: int = Field(default=2, ge=1, le=4)
    cost_per_token: float = Field(default=0.0, ge=0.0)
    max_output_tokens: int = Field(default=4096, gt=0)
    optimal_use_cases: tuple[str, ...] = Field(default_factory=tuple)

    @property
    def capability_rank(self) -> tuple[int, int]:
        """Sort key for "most capable" (declared complexity, then reasoning depth)."""
        return (self.declared_complexity, self.capabilities.reasoning_depth)
