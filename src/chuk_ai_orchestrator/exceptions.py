# chuk_ai_orchestrator/exceptions.py
"""
Exception hierarchy for the orchestrator.

Callers only ever see one of these at the Orchestrator boundary. Backend-level
failures (TransportError, BackendUnavailableError) are absorbed and retried
internally; ExhaustedFallbackError is what escapes once the retry budget is
spent.
"""

from __future__ import annotations

from collections.abc import Sequence


class OrchestrationError(Exception):
    """Base class for every error raised by chuk_ai_orchestrator."""


class ValidationError(OrchestrationError):
    """Malformed input: empty or oversized prompt, unknown thread id, etc."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class TransportError(OrchestrationError):
    """Network failure, provider error or timeout while talking to a backend."""

    def __init__(self, backend_id: str, reason: str) -> None:
        super().__init__(f"Backend '{backend_id}' failed: {reason}")
        self.backend_id = backend_id
        self.reason = reason


class BackendUnavailableError(OrchestrationError):
    """The selected backend's circuit is open and no fallback remains."""

    def __init__(self, backend_id: str, task_type: str) -> None:
        super().__init__(f"Backend '{backend_id}' is unavailable for task type: {task_type}")
        self.backend_id = backend_id
        self.task_type = task_type


class ExhaustedFallbackError(OrchestrationError):
    """Primary and every fallback attempt failed."""

    def __init__(
        self,
        task_type: str,
        attempted: Sequence[str],
        last_error: BaseException | None = None,
    ) -> None:
        attempted_list = list(attempted)
        message = f"All models failed for task type: {task_type}"
        if attempted_list:
            message += f" (attempted: {', '.join(attempted_list)})"
        if last_error is not None:
            message += f"; last error: {last_error}"
        super().__init__(message)
        self.task_type = task_type
        self.attempted = attempted_list
        self.last_error = last_error


class CapacityError(OrchestrationError):
    """Memory store is at its thread cap and ranked eviction freed nothing."""

    def __init__(self, resident: int, cap: int) -> None:
        super().__init__(f"Memory store holds {resident} threads (cap {cap}) and eviction freed no space")
        self.resident = resident
        self.cap = cap


class StorageError(OrchestrationError):
    """A persistence collaborator failed to read or write state."""
