"""Domain exceptions raised by the mark engine.

Every error here is recoverable. Engines raise them; the command layer and
the lifecycle reactors catch :class:`MarkError` and turn it into a
notification so nothing reaches the host loop.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .systems.marks.mark_system import ApplyResult


class ErrorSeverity(Enum):
    """How loudly an error should be surfaced."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class MarkError(Exception):
    """Base class for all mark engine errors."""

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.WARNING

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = self.DEFAULT_SEVERITY
        self.error_code: str = self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Return a serializable view of the error."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class NotACaster(MarkError):
    """Actor has no levels in the marking class."""


class NoCapacity(MarkError):
    """Caster already holds as many marks as their level allows."""


class NoUsesRemaining(MarkError):
    """Caster has spent every use for the current recovery period."""


class NoTargetsSelected(MarkError):
    """Apply was invoked with an empty candidate list."""


class NoActiveMark(MarkError):
    """No mark from this caster exists on the target."""


class UnknownAspect(MarkError):
    """Unleash was asked for an aspect that does not exist."""


class TargetNotPlaced(MarkError):
    """Target has no position, so an area cannot be centred on it."""


class NoVitality(MarkError):
    """Entity has no vitality to read, damage or restore."""


class InvalidDiceExpression(MarkError):
    """A dice formula could not be parsed."""

    DEFAULT_SEVERITY = ErrorSeverity.ERROR


class StoreWriteFailed(MarkError):
    """The attribute store rejected a write."""

    DEFAULT_SEVERITY = ErrorSeverity.ERROR


class CorruptState(MarkError):
    """Stored mark data violated an invariant and had to be repaired."""


class PartialApplyError(MarkError):
    """Some targets in an apply batch could not be marked.

    ``result`` lists exactly which targets were and were not marked.
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR

    def __init__(self, result: "ApplyResult") -> None:
        self.result = result
        super().__init__(
            "Mark application partially failed",
            {"marked": list(result.marked), "failed": list(result.failed)},
        )


__all__ = [
    "ErrorSeverity",
    "MarkError",
    "NotACaster",
    "NoCapacity",
    "NoUsesRemaining",
    "NoTargetsSelected",
    "NoActiveMark",
    "UnknownAspect",
    "TargetNotPlaced",
    "NoVitality",
    "InvalidDiceExpression",
    "StoreWriteFailed",
    "CorruptState",
    "PartialApplyError",
]
