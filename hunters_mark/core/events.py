"""Host event payloads and a small publish/subscribe bus.

The core never looks at how the host dispatches its hooks. The host
publishes named events here and reactors subscribe by name.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

REST_COMPLETED = "rest_completed"
VITALITY_CHANGED = "vitality_changed"
MARKS_APPLIED = "marks_applied"
MARK_REMOVED = "mark_removed"
UNLEASHED = "unleashed"
MARKS_CLEARED = "marks_cleared"

Handler = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(slots=True)
class RestCompleted:
    """An actor finished a rest; only long rests reset marks."""

    actor_id: int
    long_rest: bool = True


@dataclass(slots=True)
class VitalityChanged:
    """An actor's current vitality was written."""

    actor_id: int
    old: int
    new: int


class EventBus:
    """Deliver named events to subscribed handlers.

    Handlers run one after another in subscription order and ``publish``
    returns only when all of them have finished. A handler that raises is
    logged and skipped; the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}

    def subscribe(self, event_name: str, handler: Handler) -> None:
        handlers = self._handlers.setdefault(event_name, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_name: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_name, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers(self, event_name: str) -> List[Handler]:
        return list(self._handlers.get(event_name, []))

    async def publish(self, event_name: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every handler of ``event_name``.

        Returns the number of handlers that completed without raising.
        """

        delivered = 0
        for handler in self.handlers(event_name):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception:
                logger.error(
                    "Handler %r failed for event '%s'", handler, event_name, exc_info=True
                )
        return delivered


__all__ = [
    "EventBus",
    "RestCompleted",
    "VitalityChanged",
    "REST_COMPLETED",
    "VITALITY_CHANGED",
    "MARKS_APPLIED",
    "MARK_REMOVED",
    "UNLEASHED",
    "MARKS_CLEARED",
]
