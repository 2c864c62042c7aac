# chuk_ai_orchestrator/orchestration/catalog.py
"""
ModelCatalog - the static table of backends and capability buckets.

Read-only after construction, so it is shared between components without
locking. Buckets group backends by the kind of work they are preferred
for ("coding", "analysis", ...); the ``main`` bucket is the general
fallback for unknown task types.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from chuk_ai_orchestrator.models import ModelCapabilities, ModelProfile

logger = logging.getLogger(__name__)

GENERAL_BUCKET = "main"

# Task type -> bucket. Tuples are (threshold, bucket if complexity > threshold, otherwise).
TASK_BUCKETS: dict[str, str | tuple[int, str, str]] = {
    "frontend": (2, "coding", "creative"),
    "backend": (2, "coding", "main"),
    "testing": (1, "coding", "main"),
    "devops": "coding",
    "analysis": "analysis",
    "security": "review",
    "debugging": "debug",
    "research": "research",
    "consensus": "consensus",
    "chat": "main",
    "planning": "main",
}


def _profile(
    model_id: str,
    display_name: str,
    declared_complexity: int,
    cost_per_token: float,
    *,
    reasoning_depth: int,
    creativity_level: int,
    analytical_precision: int,
    response_speed: int,
    context_window: int,
    multimodal: bool = False,
    max_output_tokens: int = 8192,
    use_cases: Iterable[str] = (),
) -> ModelProfile:
    provider = model_id.split("/", 1)[0]
    return ModelProfile(
        model_id=model_id,
        provider=provider,
        display_name=display_name,
        declared_complexity=declared_complexity,
        cost_per_token=cost_per_token,
        max_output_tokens=max_output_tokens,
        optimal_use_cases=tuple(use_cases),
        capabilities=ModelCapabilities(
            reasoning_depth=reasoning_depth,
            creativity_level=creativity_level,
            analytical_precision=analytical_precision,
            response_speed=response_speed,
            context_window=context_window,
            multimodal=multimodal,
        ),
    )


DEFAULT_PROFILES: tuple[ModelProfile, ...] = (
    _profile(
        "google/gemini-flash-1.5",
        "Gemini 1.5 Flash",
        2,
        0.000075,
        reasoning_depth=7,
        creativity_level=8,
        analytical_precision=8,
        response_speed=9,
        context_window=1_000_000,
        multimodal=True,
        use_cases=("general", "fast_reasoning", "multimodal"),
    ),
    _profile(
        "google/gemini-pro-1.5",
        "Gemini 1.5 Pro",
        4,
        0.00125,
        reasoning_depth=9,
        creativity_level=8,
        analytical_precision=9,
        response_speed=7,
        context_window=2_000_000,
        multimodal=True,
        use_cases=("research", "creative", "deep_reasoning"),
    ),
    _profile(
        "anthropic/claude-3.5-sonnet",
        "Claude 3.5 Sonnet",
        4,
        0.003,
        reasoning_depth=9,
        creativity_level=8,
        analytical_precision=9,
        response_speed=7,
        context_window=200_000,
        use_cases=("coding", "analysis"),
    ),
    _profile(
        "openai/gpt-4o",
        "GPT-4o",
        4,
        0.0025,
        reasoning_depth=9,
        creativity_level=7,
        analytical_precision=9,
        response_speed=7,
        context_window=128_000,
        multimodal=True,
        use_cases=("analysis",),
    ),
    _profile(
        "anthropic/claude-3-haiku",
        "Claude 3 Haiku",
        2,
        0.00025,
        reasoning_depth=6,
        creativity_level=6,
        analytical_precision=7,
        response_speed=10,
        context_window=200_000,
        max_output_tokens=4096,
        use_cases=("debug",),
    ),
    _profile(
        "openai/gpt-4o-mini",
        "GPT-4o mini",
        2,
        0.00015,
        reasoning_depth=6,
        creativity_level=6,
        analytical_precision=7,
        response_speed=9,
        context_window=128_000,
        max_output_tokens=4096,
        use_cases=("review",),
    ),
)

DEFAULT_BUCKETS: dict[str, tuple[str, ...]] = {
    "main": ("google/gemini-flash-1.5",),
    "research": ("google/gemini-pro-1.5",),
    "fallback": ("google/gemini-flash-1.5",),
    "coding": ("anthropic/claude-3.5-sonnet",),
    "analysis": ("openai/gpt-4o",),
    "creative": ("google/gemini-pro-1.5",),
    "debug": ("anthropic/claude-3-haiku",),
    "review": ("openai/gpt-4o-mini",),
    "consensus": ("google/gemini-pro-1.5", "anthropic/claude-3.5-sonnet", "openai/gpt-4o"),
    "collaborative": ("google/gemini-flash-1.5", "anthropic/claude-3-haiku"),
}


class ModelCatalog:
    """
    Static table of backend profiles and the buckets that group them.

    Profile order is significant: it is the first-seen order used for
    tie-breaking everywhere else.
    """

    def __init__(
        self,
        profiles: Sequence[ModelProfile] | None = None,
        buckets: Mapping[str, Sequence[str]] | None = None,
        task_buckets: Mapping[str, str | tuple[int, str, str]] | None = None,
    ) -> None:
        profiles = DEFAULT_PROFILES if profiles is None else profiles
        if not profiles:
            raise ValueError("ModelCatalog needs at least one profile")

        self._profiles: dict[str, ModelProfile] = {}
        for profile in profiles:
            if profile.model_id in self._profiles:
                raise ValueError(f"Duplicate backend id in catalog: {profile.model_id}")
            self._profiles[profile.model_id] = profile

        if buckets is None:
            buckets = DEFAULT_BUCKETS if profiles is DEFAULT_PROFILES else {GENERAL_BUCKET: list(self._profiles)}
        self._buckets: dict[str, tuple[str, ...]] = {}
        for name, members in buckets.items():
            unknown = [m for m in members if m not in self._profiles]
            if unknown:
                raise ValueError(f"Bucket '{name}' references unknown backends: {unknown}")
            self._buckets[name] = tuple(members)
        if GENERAL_BUCKET not in self._buckets:
            self._buckets[GENERAL_BUCKET] = (next(iter(self._profiles)),)

        self._task_buckets = dict(TASK_BUCKETS if task_buckets is None else task_buckets)
        logger.debug("Model catalog initialized with %d backends, %d buckets", len(self._profiles), len(self._buckets))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def backend_ids(self) -> list[str]:
        return list(self._profiles)

    @property
    def bucket_names(self) -> list[str]:
        return list(self._buckets)

    def __contains__(self, backend_id: object) -> bool:
        return backend_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def get(self, backend_id: str) -> ModelProfile | None:
        return self._profiles.get(backend_id)

    def profile(self, backend_id: str) -> ModelProfile:
        try:
            return self._profiles[backend_id]
        except KeyError:
            raise KeyError(f"Unknown backend: {backend_id}") from None

    def profiles(self) -> list[ModelProfile]:
        return list(self._profiles.values())

    # ------------------------------------------------------------------
    # Task routing
    # ------------------------------------------------------------------

    def bucket_for(self, task_type: str, complexity: int) -> str:
        """Map a task type to a bucket name. Unknown task types use the general bucket."""
        rule = self._task_buckets.get(task_type)
        if isinstance(rule, tuple):
            threshold, above, otherwise = rule
            name = above if complexity > threshold else otherwise
        elif rule is not None:
            name = rule
        else:
            name = task_type
        return name if name in self._buckets else GENERAL_BUCKET

    def known_task_type(self, task_type: str) -> str:
        """``task_type`` if the catalog routes it explicitly, else the general bucket name."""
        if task_type in self._task_buckets or task_type in self._buckets:
            return task_type
        return GENERAL_BUCKET

    def candidates(self, task_type: str, complexity: int) -> list[str]:
        """Ordered candidate backends for a task type at a given complexity."""
        return list(self._buckets[self.bucket_for(task_type, complexity)])

    def most_capable(self, backend_ids: Sequence[str]) -> str:
        """Highest declared capability among ``backend_ids``; first-seen wins ties."""
        best = backend_ids[0]
        for backend_id in backend_ids[1:]:
            if self.profile(backend_id).capability_rank > self.profile(best).capability_rank:
                best = backend_id
        return best
