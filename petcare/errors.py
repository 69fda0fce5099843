"""Error kinds raised or reported by the pet-care engine."""

from __future__ import annotations

from typing import Optional


class PetCareError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(PetCareError):
    """Malformed decay, threshold or scheduling configuration.

    Raised at construction time only; the engine never falls back to defaults
    once it is running.
    """


class PersistenceFailure(PetCareError):
    """A load/save collaborator call failed.

    The collaborator exception is chained as ``__cause__``; ``operation`` is
    ``"load"`` or ``"save"``. The in-memory state stays authoritative.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class TaskStateConflict(PetCareError):
    """Auto-work was asked to start, complete or cancel in the wrong state.

    These are logged and treated as no-ops; they are never raised to callers.
    """

    def __init__(self, action: str, task_id: Optional[str], reason: str) -> None:
        super().__init__(f"{action} ignored for task {task_id or '-'}: {reason}")
        self.action = action
        self.task_id = task_id
        self.reason = reason


class InvariantViolation(PetCareError):
    """A gauge left the [0, 100] range after a mutation (programming error)."""
