# tests/test_validation.py
"""Tests for input validation helpers and the exception hierarchy."""

import pytest

from chuk_ai_orchestrator.exceptions import (
    BackendUnavailableError,
    CapacityError,
    ExhaustedFallbackError,
    OrchestrationError,
    StorageError,
    TransportError,
    ValidationError,
)
from chuk_ai_orchestrator.validation import validate_identifier, validate_prompt, validate_string


class TestValidateString:
    def test_strips(self):
        assert validate_string("  hi  ", "x", 10) == "hi"

    def test_non_string(self):
        with pytest.raises(ValidationError, match="must be a string") as exc_info:
            validate_string(3, "count", 10)
        assert exc_info.value.field == "count"

    def test_too_long(self):
        with pytest.raises(ValidationError, match="maximum length of 3"):
            validate_string("abcd", "x", 3)

    def test_blank(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            validate_string("\n\t ", "x", 10)

    def test_prompt_and_identifier(self):
        assert validate_prompt("hello") == "hello"
        assert validate_identifier("t1", "thread_id") == "t1"
        with pytest.raises(ValidationError) as exc_info:
            validate_identifier("", "thread_id")
        assert exc_info.value.field == "thread_id"


class TestExceptions:
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("x"),
            TransportError("m", "down"),
            BackendUnavailableError("m", "coding"),
            ExhaustedFallbackError("coding", ["m"]),
            CapacityError(3, 2),
            StorageError("disk"),
        ],
    )
    def test_hierarchy(self, error):
        assert isinstance(error, OrchestrationError)

    def test_transport_message(self):
        err = TransportError("acme/m1", "timed out")
        assert str(err) == "Backend 'acme/m1' failed: timed out"
        assert err.reason == "timed out"

    def test_exhausted_message(self):
        err = ExhaustedFallbackError("coding", ["a", "b"], TransportError("b", "down"))
        assert str(err) == (
            "All models failed for task type: coding (attempted: a, b); last error: Backend 'b' failed: down"
        )

    def test_exhausted_minimal(self):
        assert str(ExhaustedFallbackError("main", [])) == "All models failed for task type: main"

    def test_unavailable(self):
        err = BackendUnavailableError("acme/m1", "coding")
        assert err.backend_id == "acme/m1"
        assert "unavailable" in str(err)
