from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Remote backend (OpenRouter speaks the OpenAI wire format)
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = os.getenv("CHUK_ORCHESTRATOR_BASE_URL", "https://openrouter.ai/api/v1")

# Orchestrator
DEFAULT_MAX_PROMPT_LENGTH = _env_int("CHUK_ORCHESTRATOR_MAX_PROMPT_LENGTH", 50_000)
DEFAULT_CALL_TIMEOUT_SECONDS = _env_float("CHUK_ORCHESTRATOR_CALL_TIMEOUT", 60.0)
DEFAULT_MAX_TOKENS = _env_int("CHUK_ORCHESTRATOR_MAX_TOKENS", 2000)
DEFAULT_TEMPERATURE = _env_float("CHUK_ORCHESTRATOR_TEMPERATURE", 0.7)

# Circuit breaker
DEFAULT_COOLDOWN_SECONDS = _env_float("CHUK_ORCHESTRATOR_COOLDOWN", 300.0)

# Conversation memory
DEFAULT_MAX_THREADS = _env_int("CHUK_ORCHESTRATOR_MAX_THREADS", 1000)
DEFAULT_MAX_FRAGMENTS_PER_THREAD = _env_int("CHUK_ORCHESTRATOR_MAX_FRAGMENTS", 100)
DEFAULT_MAINTENANCE_INTERVAL_SECONDS = _env_float("CHUK_ORCHESTRATOR_MAINTENANCE_INTERVAL", 3600.0)

# Response cache
DEFAULT_CACHE_MAX_ITEMS = _env_int("CHUK_ORCHESTRATOR_CACHE_MAX_ITEMS", 1000)
