"""JSON-lines record of mark activity.

Each line is ``{"tick", "event_type", "data"}``. Records may also go to a
plain list, which is what the world keeps in memory. A file that grows past
the configured retention size is archived as ``<stem>_<utc time>.jsonl.gz``
beside it and started afresh.
"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ..config import CONFIG

logger = logging.getLogger(__name__)

MARK_APPLIED = "MARK_APPLIED"
MARK_REMOVED = "MARK_REMOVED"
UNLEASH = "UNLEASH"
MARKS_CLEARED = "MARKS_CLEARED"
NOTIFICATION = "NOTIFICATION"

Record = Dict[str, Any]


def _log_retention_bytes() -> int:
    return CONFIG.event_log.retention_mb * 1024 * 1024


def _record(tick: int, event_type: str, data: Any) -> Record:
    if is_dataclass(data) and not isinstance(data, type):
        data = asdict(data)
    return {"tick": tick, "event_type": event_type, "data": data}


def _parse(line: str) -> Optional[Record]:
    line = line.strip()
    if not line:
        return None
    try:
        return json.loads(line)
    except json.JSONDecodeError:
        logger.debug("Skipping unreadable event line: %.80s", line)
        return None


class EventLog:
    """Append-only event file with size-based archiving."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _archive_path(self) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        name = f"{self.path.stem}_{stamp}{self.path.suffix}.gz"
        candidate = self.path.with_name(name)
        n = 1
        while candidate.exists():
            candidate = self.path.with_name(f"{self.path.stem}_{stamp}_{n}{self.path.suffix}.gz")
            n += 1
        return candidate

    def rotate(self) -> Path:
        """Move the current contents into a gzip archive and empty the file."""

        archive = self._archive_path()
        with gzip.open(archive, "wb") as dst:
            dst.write(self.path.read_bytes())
        self.path.write_bytes(b"")
        logger.info("Archived event log %s to %s", self.path, archive.name)
        return archive

    def _needs_rotation(self) -> bool:
        return self.path.exists() and self.path.stat().st_size >= _log_retention_bytes()

    def append(self, tick: int, event_type: str, data: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self._needs_rotation():
            self.rotate()
        line = json.dumps(_record(tick, event_type, data), ensure_ascii=False, default=str)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def __iter__(self) -> Iterator[Record]:
        if not self.path.exists():
            return
        with self.path.open("r", encoding="utf-8") as fh:
            for line in fh:
                record = _parse(line)
                if record is not None:
                    yield record


def append_event(dest: str | Path | List[Record], tick: int, event_type: str, data: Any) -> None:
    """Append one record to an in-memory list or to the log file at ``dest``."""

    if isinstance(dest, list):
        dest.append(_record(tick, event_type, data))
    else:
        EventLog(dest).append(tick, event_type, data)


def iter_events(path: str | Path) -> Iterator[Record]:
    """Yield the records in ``path`` oldest first; unreadable lines are skipped."""

    return iter(EventLog(path))


__all__ = [
    "EventLog",
    "append_event",
    "iter_events",
    "MARK_APPLIED",
    "MARK_REMOVED",
    "UNLEASH",
    "MARKS_CLEARED",
    "NOTIFICATION",
]
