"""User-facing notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from ..persistence.event_log import NOTIFICATION, EventLog, append_event

logger = logging.getLogger(__name__)

_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class Notification:
    level: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


class Notifier:
    """Record messages for the surrounding UI.

    Every message is kept in :attr:`history`, logged, and appended to the
    JSONL event log when a path is configured. Nothing here waits on the
    reader.
    """

    def __init__(self, log_path: str | Path | None = None) -> None:
        self.history: List[Notification] = []
        self.event_log: EventLog | None = EventLog(log_path) if log_path else None

    def emit(self, message: str, level: str = "info", **data: Any) -> Notification:
        if level not in _LEVELS:
            level = "info"
        note = Notification(level=level, message=message, data=data)
        self.history.append(note)
        logger.log(_LEVELS[level], "%s", message)
        if self.event_log is not None:
            self.event_log.append(len(self.history), NOTIFICATION, note)
        return note

    def info(self, message: str, **data: Any) -> Notification:
        return self.emit(message, "info", **data)

    def warn(self, message: str, **data: Any) -> Notification:
        return self.emit(message, "warning", **data)

    def error(self, message: str, **data: Any) -> Notification:
        return self.emit(message, "error", **data)

    def messages(self, level: str | None = None) -> List[str]:
        return [n.message for n in self.history if level is None or n.level == level]


def log_event(
    event_type: str,
    data: Any,
    log: List[Dict[str, Any]] | EventLog | None = None,
    tick: int = 0,
) -> None:
    """Append a structured engine event to ``log`` when one is given."""

    if log is None:
        return
    if isinstance(log, EventLog):
        log.append(tick, event_type, data)
    else:
        append_event(log, tick, event_type, data)


__all__ = ["Notification", "Notifier", "log_event"]
