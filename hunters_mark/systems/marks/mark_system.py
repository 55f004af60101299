"""Apply, remove and inspect marks."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, TYPE_CHECKING

from ...core.attributes import MODULE_NAMESPACE
from ...core.components.caster_stats import CasterStats
from ...core.events import MARK_REMOVED, MARKS_APPLIED
from ...errors import (
    NoActiveMark,
    NoCapacity,
    NoTargetsSelected,
    NoUsesRemaining,
    NotACaster,
    PartialApplyError,
    StoreWriteFailed,
)
from ...persistence import event_log
from ...persistence.mark_store import Mark, MarkStore
from ...utils.dice import RollResult
from ...utils.observer import log_event
from ..combat.damage_types import DamageType
from .policy import caster_level, is_caster, mark_capacity, mark_die, uses_for

if TYPE_CHECKING:
    from ...core.world import World

logger = logging.getLogger(__name__)

USES_KEY = "uses"
MARK_FLAVOR = "Hunter's Mark"


@dataclass
class ApplyResult:
    """What one apply action did."""

    caster: int
    die: str
    damage_type: str
    capacity: int
    slots_before: int
    uses_used: int
    uses_max: int
    marked: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def uses_remaining(self) -> int:
        return max(0, self.uses_max - self.uses_used)

    @property
    def slots_after(self) -> int:
        return max(0, self.slots_before - len(self.marked))


@dataclass(frozen=True)
class DamageBonus:
    """Extra damage formula for a hit against a marked target."""

    formula: str
    flavor: str = MARK_FLAVOR


@dataclass(frozen=True)
class MarkedTarget:
    target: int
    name: str
    die: str


@dataclass
class MarkStatus:
    caster: int
    die: str
    damage_type: str
    capacity: int
    uses_used: int
    uses_max: int
    marks: List[MarkedTarget] = field(default_factory=list)

    @property
    def uses_remaining(self) -> int:
        return max(0, self.uses_max - self.uses_used)


class MarkEngine:
    """Place marks within a caster's capacity and daily uses."""

    def __init__(self, world: "World", store: MarkStore) -> None:
        self.world = world
        self.store = store
        self.attributes = world.attributes

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_caster(self, caster: int) -> CasterStats:
        stats = self.world.component_manager.get_component(caster, CasterStats)
        if not is_caster(stats):
            raise NotACaster(
                "This feature is for Rangers.", {"actor": self.world.name_of(caster)}
            )
        return stats

    @property
    def damage_type(self) -> str:
        return DamageType.from_config(self.world.config.marks.damage_type).value

    async def uses_consumed(self, caster: int) -> int:
        value = await self.attributes.get(caster, MODULE_NAMESPACE, USES_KEY)
        return int(value or 0)

    async def _mark_one(self, caster: int, target: int, die: str, caster_name: str) -> None:
        """Write the mark and its indicator, or neither."""

        mark = Mark(die=die, applied_at=time.time(), origin=caster, caster_name=caster_name)
        await self.store.set(target, caster, mark)
        try:
            await self.world.effects.create_indicator(
                target,
                icon=self.world.config.marks.indicator_icon,
                origin=caster,
                label=f"Marked by {caster_name}",
            )
        except StoreWriteFailed:
            await self.store.delete(target, caster)
            raise

    async def _rollback(self, caster: int, targets: Iterable[int]) -> None:
        for target in targets:
            try:
                async with self.store.claim(target, caster):
                    await self.store.discard(target, caster)
            except StoreWriteFailed:
                logger.error("Rollback of mark on %s for %s failed", target, caster, exc_info=True)

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------
    async def apply_marks(self, caster: int, candidates: Iterable[int]) -> ApplyResult:
        """Mark as many ``candidates`` as capacity and uses allow.

        Candidates are taken in the given order. One successful action costs
        one use however many targets it marks; a batch where every chosen
        target already bears this caster's mark costs nothing.
        """

        stats = self._require_caster(caster)
        candidates = list(candidates)
        caster_name = self.world.name_of(caster)

        async with self.store.caster_lock(caster):
            level = caster_level(stats)
            capacity = mark_capacity(level)
            uses_max = uses_for(stats)
            used = await self.uses_consumed(caster)
            active = await self.store.count_for_caster(caster, self.world.actors())

            remaining_slots = max(0, capacity - active)
            remaining_uses = uses_max - used
            if remaining_slots == 0:
                raise NoCapacity(
                    f"You already have {active}/{capacity} targets marked.",
                    {"active": active, "capacity": capacity},
                )
            if remaining_uses <= 0:
                raise NoUsesRemaining(
                    f"No uses remaining (used {used}/{uses_max}).",
                    {"used": used, "max": uses_max},
                )
            if not candidates:
                raise NoTargetsSelected("Target at least one token.")

            apply_count = min(remaining_slots, remaining_uses, len(candidates))
            result = ApplyResult(
                caster=caster,
                die=mark_die(level),
                damage_type=self.damage_type,
                capacity=capacity,
                slots_before=remaining_slots,
                uses_used=used,
                uses_max=uses_max,
            )

            for target in candidates[:apply_count]:
                async with self.store.claim(target, caster):
                    if await self.store.get(target, caster) is not None:
                        result.skipped.append(target)
                        continue
                    try:
                        await self._mark_one(caster, target, result.die, caster_name)
                    except StoreWriteFailed as exc:
                        logger.warning("Could not mark %s for %s: %s", target, caster, exc)
                        result.failed.append(target)
                        continue
                result.marked.append(target)

            if result.marked:
                try:
                    await self.attributes.set(caster, MODULE_NAMESPACE, USES_KEY, used + 1)
                except StoreWriteFailed:
                    await self._rollback(caster, result.marked)
                    raise
                result.uses_used = used + 1

        if result.marked:
            await self._announce(result)
        else:
            logger.debug("Apply by %s marked nothing new (skipped %s)", caster, result.skipped)
        if result.failed:
            raise PartialApplyError(result)
        return result

    async def _announce(self, result: ApplyResult) -> None:
        names = ", ".join(self.world.name_of(t) for t in result.marked)
        self.world.notifier.info(
            f"{self.world.name_of(result.caster)} applies Mark ({result.die}, "
            f"{result.damage_type}) to: {names}. Uses Remaining: "
            f"{result.uses_remaining}/{result.uses_max} • Capacity: "
            f"{result.slots_before} → {result.slots_after}",
            caster=result.caster,
            marked=list(result.marked),
        )
        log_event(event_log.MARK_APPLIED, result, self.world.event_records)
        await self.world.bus.publish(MARKS_APPLIED, result)

    # ------------------------------------------------------------------
    # Manual removal
    # ------------------------------------------------------------------
    async def remove_mark(self, caster: int, target: int) -> bool:
        """Remove ``caster``'s mark from ``target`` without any Unleash effect."""

        async with self.store.claim(target, caster):
            found = await self.store.discard(target, caster)
        if found:
            self.world.notifier.info(f"Removed mark from {self.world.name_of(target)}.")
            log_event(
                event_log.MARK_REMOVED,
                {"caster": caster, "target": target},
                self.world.event_records,
            )
            await self.world.bus.publish(MARK_REMOVED, {"caster": caster, "target": target})
        return found

    # ------------------------------------------------------------------
    # Bonus damage
    # ------------------------------------------------------------------
    async def damage_bonus(self, attacker: int, target: int) -> Optional[DamageBonus]:
        """Bonus damage formula for ``attacker`` hitting ``target``, if marked."""

        stats = self.world.component_manager.get_component(attacker, CasterStats)
        if not is_caster(stats):
            return None
        mark = await self.store.get(target, attacker)
        if mark is None:
            return None
        return DamageBonus(formula=f"{mark.die}[{self.damage_type}]")

    async def roll_mark_damage(self, caster: int, target: int) -> RollResult:
        """Roll the mark die after a hit confirmed by hand."""

        mark = await self.store.get(target, caster)
        if mark is None:
            raise NoActiveMark("Target isn't marked by you.", {"target": target})
        roll = self.world.roller.roll(mark.die)
        self.world.notifier.info(
            f"{MARK_FLAVOR}: {mark.die} {self.damage_type} to "
            f"{self.world.name_of(target)} ({roll.total}).",
            total=roll.total,
        )
        return roll

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------
    async def status(self, caster: int) -> MarkStatus:
        stats = self._require_caster(caster)
        level = caster_level(stats)
        status = MarkStatus(
            caster=caster,
            die=mark_die(level),
            damage_type=self.damage_type,
            capacity=mark_capacity(level),
            uses_used=await self.uses_consumed(caster),
            uses_max=uses_for(stats),
        )
        for target in self.world.actors():
            mark = await self.store.get(target, caster)
            if mark is not None:
                status.marks.append(MarkedTarget(target, self.world.name_of(target), mark.die))
        return status


__all__ = [
    "ApplyResult",
    "DamageBonus",
    "MarkEngine",
    "MarkStatus",
    "MarkedTarget",
    "USES_KEY",
]
