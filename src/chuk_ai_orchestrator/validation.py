# chuk_ai_orchestrator/validation.py
"""Input checks applied at the Orchestrator boundary."""

from __future__ import annotations

from chuk_ai_orchestrator.config import DEFAULT_MAX_PROMPT_LENGTH
from chuk_ai_orchestrator.exceptions import ValidationError


def validate_string(value: object, name: str, max_length: int) -> str:
    """Return ``value`` stripped; reject non-strings, blanks and oversized input."""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string", field=name)
    if len(value) > max_length:
        raise ValidationError(f"{name} exceeds maximum length of {max_length}", field=name)
    stripped = value.strip()
    if not stripped:
        raise ValidationError(f"{name} must not be empty", field=name)
    return stripped


def validate_prompt(prompt: object, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> str:
    return validate_string(prompt, "prompt", max_length)


def validate_identifier(value: object, name: str, max_length: int = 256) -> str:
    """Thread ids and task types: non-empty strings without surrounding whitespace."""
    return validate_string(value, name, max_length)
