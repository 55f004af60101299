"""Per-target mark records kept in the host attribute store.

A target holds one ``marks`` attribute under the module namespace: a mapping
of caster id (as a string) to the serialized :class:`Mark`. Marks live on the
target, not the caster, because several casters may mark the same target.

Locking
-------
* Every read-modify-write of a target's map runs under that target's lock,
  so two casters marking one target never drop each other's entry.
* :meth:`MarkStore.claim` holds a lock for one (caster, target) pair. Code
  that consumes or removes a mark does so inside a claim, so a second
  consumer entering afterwards finds the mark gone.
* :meth:`MarkStore.caster_lock` serializes everything touching one caster's
  uses counter (applying marks, long rest).
* Locks are taken caster lock, then claim, then target lock.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

from ..core.attributes import MODULE_NAMESPACE
from ..errors import CorruptState

if TYPE_CHECKING:
    from ..core.world import World

logger = logging.getLogger(__name__)

MARKS_KEY = "marks"


@dataclass(frozen=True)
class Mark:
    """One caster's mark on one target. Never mutated after it is written."""

    die: str
    applied_at: float
    origin: int
    caster_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "die": self.die,
            "applied": self.applied_at,
            "origin": self.origin,
            "actor_name": self.caster_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: Any = None) -> "Mark":
        """Build a mark from its stored form.

        ``origin`` falls back to the map ``key`` when the entry lacks one.
        Raises ``KeyError``/``ValueError``/``TypeError`` on unusable data.
        """
        origin = data.get("origin", key)
        return cls(
            die=str(data["die"]),
            applied_at=float(data.get("applied", 0.0)),
            origin=int(origin),
            caster_name=str(data.get("actor_name", "")),
        )


class MarkStore:
    """Read and write marks on targets through the attribute store."""

    def __init__(self, world: "World") -> None:
        self.world = world
        self.attributes = world.attributes
        # Locks live only while someone holds or waits on them.
        self._target_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._caster_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._claims: weakref.WeakValueDictionary[Tuple[int, int], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------
    def _lock(self, target: int) -> asyncio.Lock:
        lock = self._target_locks.get(target)
        if lock is None:
            lock = self._target_locks[target] = asyncio.Lock()
        return lock

    def caster_lock(self, caster: int) -> asyncio.Lock:
        """Lock guarding a caster's uses counter and mark count."""
        lock = self._caster_locks.get(caster)
        if lock is None:
            lock = self._caster_locks[caster] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def claim(self, target: int, caster: int) -> AsyncIterator[None]:
        """Hold exclusive use of the (caster, target) mark."""

        lock = self._claims.get((target, caster))
        if lock is None:
            lock = self._claims[(target, caster)] = asyncio.Lock()
        async with lock:
            yield

    # ------------------------------------------------------------------
    # Serialization (callers hold the target lock)
    # ------------------------------------------------------------------
    async def _load(self, target: int) -> Tuple[Dict[int, Mark], bool]:
        """Return ``(marks, repaired)`` for ``target``."""

        raw = await self.attributes.get(target, MODULE_NAMESPACE, MARKS_KEY)
        if raw is None:
            return {}, False
        if not isinstance(raw, dict):
            logger.warning("Discarding non-mapping marks attribute on %s: %r", target, raw)
            return {}, True

        marks: Dict[int, Mark] = {}
        repaired = False
        for key, entry in raw.items():
            try:
                mark = Mark.from_dict(entry, key)
            except (AttributeError, KeyError, TypeError, ValueError):
                logger.warning("Dropping unreadable mark %r=%r on %s", key, entry, target)
                repaired = True
                continue
            if str(key) != str(mark.origin):
                repaired = True
            previous = marks.get(mark.origin)
            if previous is not None:
                logger.warning(
                    "%s",
                    CorruptState(
                        "Two marks found for one caster; keeping the newest",
                        {"target": target, "caster": mark.origin},
                    ),
                )
                repaired = True
                if previous.applied_at >= mark.applied_at:
                    continue
            marks[mark.origin] = mark
        return marks, repaired

    async def _save(self, target: int, marks: Dict[int, Mark]) -> None:
        if marks:
            payload = {str(caster): mark.to_dict() for caster, mark in marks.items()}
            await self.attributes.set(target, MODULE_NAMESPACE, MARKS_KEY, payload)
        else:
            await self.attributes.delete(target, MODULE_NAMESPACE, MARKS_KEY)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def marks_on(self, target: int) -> Dict[int, Mark]:
        """Return every caster's mark on ``target``."""

        async with self._lock(target):
            marks, repaired = await self._load(target)
            if repaired:
                await self._save(target, marks)
        return marks

    async def get(self, target: int, caster: int) -> Optional[Mark]:
        return (await self.marks_on(target)).get(caster)

    async def set(self, target: int, caster: int, mark: Mark) -> None:
        async with self._lock(target):
            marks, _ = await self._load(target)
            marks[caster] = mark
            await self._save(target, marks)

    async def delete(self, target: int, caster: int) -> bool:
        """Delete ``caster``'s mark on ``target``; ``False`` if there was none."""

        async with self._lock(target):
            marks, repaired = await self._load(target)
            found = marks.pop(caster, None) is not None
            if found or repaired:
                await self._save(target, marks)
        return found

    async def targets_marked_by(self, caster: int, targets: Iterable[int]) -> List[int]:
        marked: List[int] = []
        for target in targets:
            if await self.get(target, caster) is not None:
                marked.append(target)
        return marked

    async def count_for_caster(self, caster: int, targets: Iterable[int]) -> int:
        return len(await self.targets_marked_by(caster, targets))

    async def discard(self, target: int, caster: int) -> bool:
        """Delete a mark together with its indicator.

        Callers hold ``claim(target, caster)``. Returns whether a mark existed.
        """

        found = await self.delete(target, caster)
        await self.world.effects.remove_indicator(target, caster)
        return found


__all__ = ["Mark", "MarkStore", "MARKS_KEY"]
