"""Clear marks when their caster rests or their target drops.

The two reactions run in opposite directions: a long rest clears the marks
placed *by* one caster on every target, while a target dropping to zero
clears the marks placed *on* it by every caster.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

from ...core.attributes import MODULE_NAMESPACE
from ...core.effects import MARK_INDICATOR_FLAG
from ...core.events import (
    EventBus,
    MARKS_CLEARED,
    REST_COMPLETED,
    RestCompleted,
    VITALITY_CHANGED,
    VitalityChanged,
)
from ...errors import MarkError
from ...persistence import event_log
from ...persistence.mark_store import MarkStore
from ...utils.observer import log_event
from .mark_system import USES_KEY

if TYPE_CHECKING:
    from ...core.world import World

logger = logging.getLogger(__name__)


@dataclass
class RecoverySummary:
    caster: int
    uses_reset: bool
    cleared_targets: List[int] = field(default_factory=list)


@dataclass
class IncapacitationSummary:
    target: int
    cleared_casters: List[int] = field(default_factory=list)
    indicators_removed: int = 0


class LifecycleReactor:
    """React to host rest and vitality events."""

    def __init__(self, world: "World", store: MarkStore) -> None:
        self.world = world
        self.store = store

    def register(self, bus: EventBus) -> None:
        bus.subscribe(REST_COMPLETED, self._on_rest_completed)
        bus.subscribe(VITALITY_CHANGED, self._on_vitality_changed)

    def unregister(self, bus: EventBus) -> None:
        bus.unsubscribe(REST_COMPLETED, self._on_rest_completed)
        bus.unsubscribe(VITALITY_CHANGED, self._on_vitality_changed)

    # ------------------------------------------------------------------
    # Bus handlers (boundary: domain errors become notifications)
    # ------------------------------------------------------------------
    async def _on_rest_completed(self, event: RestCompleted) -> None:
        if not event.long_rest:
            return
        try:
            await self.on_caster_recovery(event.actor_id)
        except MarkError as exc:
            logger.warning("Long rest cleanup failed for %s: %s", event.actor_id, exc)
            self.world.notifier.error(
                f"Could not reset Hunter's marks for {self.world.name_of(event.actor_id)}: "
                f"{exc.message}"
            )

    async def _on_vitality_changed(self, event: VitalityChanged) -> None:
        try:
            await self.on_target_vitality_changed(event.actor_id, event.new)
        except MarkError as exc:
            logger.warning("Mark cleanup failed for %s: %s", event.actor_id, exc)
            self.world.notifier.error(
                f"Could not clear marks on {self.world.name_of(event.actor_id)}: {exc.message}"
            )

    # ------------------------------------------------------------------
    # Reactions
    # ------------------------------------------------------------------
    async def on_caster_recovery(self, caster: int) -> Optional[RecoverySummary]:
        """Reset the uses counter and drop every mark this caster holds."""

        world = self.world
        async with self.store.caster_lock(caster):
            uses = await world.attributes.get(caster, MODULE_NAMESPACE, USES_KEY)
            marked = await self.store.targets_marked_by(caster, world.actors())
            if uses is None and not marked:
                return None

            summary = RecoverySummary(caster=caster, uses_reset=uses is not None)
            if uses is not None:
                await world.attributes.delete(caster, MODULE_NAMESPACE, USES_KEY)
            for target in marked:
                async with self.store.claim(target, caster):
                    if await self.store.discard(target, caster):
                        summary.cleared_targets.append(target)

        world.notifier.info(f"{world.name_of(caster)}: Hunter's marks cleared and uses reset.")
        log_event(event_log.MARKS_CLEARED, summary, world.event_records)
        await world.bus.publish(MARKS_CLEARED, summary)
        return summary

    async def on_target_vitality_changed(
        self, target: int, new_value: int
    ) -> Optional[IncapacitationSummary]:
        """Drop every caster's mark on ``target`` once it reaches zero."""

        if new_value != 0:
            return None

        effects = self.world.effects
        marks = await self.store.marks_on(target)
        summary = IncapacitationSummary(target=target)
        for caster in marks:
            async with self.store.claim(target, caster):
                if effects.find_indicator(target, caster) is not None:
                    summary.indicators_removed += 1
                if await self.store.discard(target, caster):
                    summary.cleared_casters.append(caster)

        # Indicators left without a mark. A mark written after the read above
        # keeps its indicator.
        for origin in effects.flagged_origins(target, MARK_INDICATOR_FLAG):
            async with self.store.claim(target, origin):
                if await self.store.get(target, origin) is not None:
                    continue
                if await effects.remove_indicator(target, origin):
                    summary.indicators_removed += 1

        if not summary.cleared_casters and not summary.indicators_removed:
            return summary

        logger.info(
            "%s dropped; cleared marks from casters %s",
            self.world.name_of(target),
            summary.cleared_casters,
        )
        log_event(event_log.MARKS_CLEARED, summary, self.world.event_records)
        await self.world.bus.publish(MARKS_CLEARED, summary)
        return summary


__all__ = ["IncapacitationSummary", "LifecycleReactor", "RecoverySummary"]
