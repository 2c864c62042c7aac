# chuk_ai_orchestrator/orchestration/complexity.py
"""Lightweight prompt complexity estimate used by the Selector."""

from __future__ import annotations

from pydantic import BaseModel, Field

MIN_COMPLEXITY = 1
MAX_COMPLEXITY = 4

DEFAULT_KEYWORD_WEIGHTS: dict[str, int] = {
    "architecture": 3,
    "enterprise": 4,
    "production": 3,
    "scalability": 3,
    "performance": 2,
    "security": 3,
    "algorithm": 3,
    "optimization": 3,
    "refactor": 2,
    "legacy": 3,
    "migration": 4,
    "integration": 3,
    "microservice": 4,
    "kubernetes": 4,
    "docker": 2,
    "testing": 2,
    "debugging": 2,
}


class ComplexityAnalyzerConfig(BaseModel):
    keyword_weights: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_KEYWORD_WEIGHTS))
    long_prompt_chars: int = 1000
    very_long_prompt_chars: int = 2000
    code_block_threshold: int = 2
    empty_prompt_complexity: int = 2


class TaskComplexityAnalyzer:
    """
    Estimate request complexity on the 1-4 scale from the prompt alone.

    Keywords raise the estimate to at least their weight; long prompts and
    prompts with several fenced code blocks do the same. The result is
    clamped to [1, 4].
    """

    def __init__(self, config: ComplexityAnalyzerConfig | None = None) -> None:
        self.config = config or ComplexityAnalyzerConfig()

    def analyze(self, prompt: str) -> int:
        cfg = self.config
        if not prompt:
            return cfg.empty_prompt_complexity

        complexity = MIN_COMPLEXITY
        lowered = prompt.lower()

        for keyword, weight in cfg.keyword_weights.items():
            if keyword in lowered:
                complexity = max(complexity, weight)

        if len(prompt) > cfg.long_prompt_chars:
            complexity = max(complexity, 3)
        if len(prompt) > cfg.very_long_prompt_chars:
            complexity = max(complexity, 4)

        code_blocks = prompt.count("```") / 2
        if code_blocks > cfg.code_block_threshold:
            complexity = max(complexity, 3)

        return max(MIN_COMPLEXITY, min(complexity, MAX_COMPLEXITY))
