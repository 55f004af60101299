"""Consume a mark to unleash one of its three aspects.

Every aspect follows the same path::

    claim (caster, target)
      -> mark present?  no -> NoActiveMark, nothing changes
      -> run the aspect
      -> delete mark and indicator (once, whichever aspect ran)

An aspect that raises leaves the mark where it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Union, TYPE_CHECKING

from ...core.components.caster_stats import CasterStats
from ...core.components.disposition import Disposition
from ...core.components.health import Health
from ...core.components.position import Position
from ...core.events import UNLEASHED
from ...errors import NoActiveMark, NoVitality, TargetNotPlaced, UnknownAspect
from ...persistence import event_log
from ...persistence.mark_store import Mark, MarkStore
from ...utils.observer import log_event
from ..combat.damage_types import DamageType
from .policy import wisdom_mod

if TYPE_CHECKING:
    from ...core.world import World

logger = logging.getLogger(__name__)

DETONATION_RADIUS = 10  # distance units
SIGHT_DURATION = 60  # seconds
SIGHT_NAME = "Unleash: Sight (Perception/Survival Advantage)"
SIGHT_ICON = "icons/skills/awareness/eye-ringed-green.webp"
SIGHT_CHANGES = (("skills.prc.adv", 1), ("skills.sur.adv", 1))


class Aspect(Enum):
    DETONATION = "detonation"
    SIGHT = "sight"
    REGENERATION = "regeneration"

    @classmethod
    def parse(cls, value: Union[str, "Aspect"]) -> "Aspect":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownAspect(
                f"Unknown Unleash aspect '{value}'",
                {"choices": [a.value for a in cls]},
            ) from None


@dataclass(frozen=True)
class DamageReport:
    entity: int
    name: str
    amount: int
    damage_type: str


@dataclass
class DetonationResult:
    """Damage to report; applying it is left to combat automation or the GM."""

    caster: int
    target: int
    die: str
    total: int
    damage_type: str
    radius_px: float
    hits: List[DamageReport] = field(default_factory=list)
    aspect: Aspect = Aspect.DETONATION

    @property
    def affected(self) -> List[int]:
        return [hit.entity for hit in self.hits]


@dataclass
class SightResult:
    caster: int
    target: int
    effect_id: int
    duration: float
    aspect: Aspect = Aspect.SIGHT


@dataclass
class RegenerationResult:
    caster: int
    target: int
    die: str
    roll_total: int
    healed: int
    hp_before: int
    hp_after: int
    aspect: Aspect = Aspect.REGENERATION


UnleashOutcome = Union[DetonationResult, SightResult, RegenerationResult]


class UnleashResolver:
    """Resolve Unleash against a marked target."""

    def __init__(self, world: "World", store: MarkStore) -> None:
        self.world = world
        self.store = store
        self._aspects: Dict[Aspect, Callable[[int, int, Mark], Awaitable[UnleashOutcome]]] = {
            Aspect.DETONATION: self._detonation,
            Aspect.SIGHT: self._sight,
            Aspect.REGENERATION: self._regeneration,
        }

    @property
    def damage_type(self) -> str:
        return DamageType.from_config(self.world.config.marks.damage_type).value

    async def unleash(
        self, caster: int, target: int, aspect: Union[str, Aspect]
    ) -> UnleashOutcome:
        aspect = Aspect.parse(aspect)
        async with self.store.claim(target, caster):
            mark = await self.store.get(target, caster)
            if mark is None:
                raise NoActiveMark(
                    "No mark to Unleash on this target.",
                    {"caster": caster, "target": target},
                )
            outcome = await self._aspects[aspect](caster, target, mark)
            await self.store.discard(target, caster)

        log_event(event_log.UNLEASH, outcome, self.world.event_records)
        await self.world.bus.publish(UNLEASHED, outcome)
        return outcome

    # ------------------------------------------------------------------
    # Aspects
    # ------------------------------------------------------------------
    async def _detonation(self, caster: int, target: int, mark: Mark) -> DetonationResult:
        world = self.world
        centre = world.component_manager.get_component(target, Position)
        if centre is None:
            raise TargetNotPlaced(
                f"{world.name_of(target)} is not on the canvas.", {"target": target}
            )

        radius_px = world.grid.to_pixels(DETONATION_RADIUS)
        in_range = [
            ent
            for ent in world.spatial_index.query_radius(centre.as_tuple(), radius_px)
            if world.entity_manager.has_entity(ent)
            and world.component_manager.get_component(ent, Health) is not None
        ]
        if not world.config.marks.detonation_friendly_fire:
            own = world.component_manager.get_component(caster, Disposition)
            if own is not None:
                in_range = [
                    ent
                    for ent in in_range
                    if getattr(
                        world.component_manager.get_component(ent, Disposition), "value", None
                    )
                    != own.value
                ]

        roll = world.roller.roll(mark.die)
        damage_type = self.damage_type
        result = DetonationResult(
            caster=caster,
            target=target,
            die=mark.die,
            total=roll.total,
            damage_type=damage_type,
            radius_px=radius_px,
            hits=[
                DamageReport(ent, world.name_of(ent), roll.total, damage_type)
                for ent in in_range
            ],
        )

        notifier = world.notifier
        notifier.info(
            f"{world.name_of(caster)} unleashes Detonation on {world.name_of(target)}: "
            f"{mark.die} {damage_type} to all within {DETONATION_RADIUS} ft ({roll.total}).",
            total=roll.total,
        )
        for hit in result.hits:
            notifier.info(
                f"Detonation hits {hit.name} for {hit.amount} {damage_type} damage. "
                "(Apply manually or via combat automation.)",
                entity=hit.entity,
            )
        return result

    async def _sight(self, caster: int, target: int, mark: Mark) -> SightResult:
        # The buff goes on the caster, not on the marked target.
        effect = await self.world.effects.add_buff(
            caster,
            name=SIGHT_NAME,
            icon=SIGHT_ICON,
            origin=caster,
            duration=SIGHT_DURATION,
            changes=SIGHT_CHANGES,
            flags={"unleash": Aspect.SIGHT.value, "target": target},
        )
        self.world.notifier.info(
            f"{self.world.name_of(caster)} unleashes Sight on "
            f"{self.world.name_of(target)} (1 minute)."
        )
        return SightResult(caster, target, effect.effect_id, SIGHT_DURATION)

    async def _regeneration(
        self, caster: int, target: int, mark: Mark
    ) -> RegenerationResult:
        world = self.world
        hp = world.component_manager.get_component(caster, Health)
        if hp is None:
            raise NoVitality(
                f"{world.name_of(caster)} has no hit points to restore.", {"caster": caster}
            )

        stats = world.component_manager.get_component(caster, CasterStats)
        roll = world.roller.roll(mark.die)
        heal = max(1, wisdom_mod(stats) + roll.total)
        before = hp.cur
        after = await world.set_health(caster, hp.clamped(before + heal))

        world.notifier.info(
            f"{world.name_of(caster)} unleashes Regeneration (heals {heal} HP).",
            healed=heal,
        )
        return RegenerationResult(
            caster=caster,
            target=target,
            die=mark.die,
            roll_total=roll.total,
            healed=heal,
            hp_before=before,
            hp_after=after,
        )


__all__ = [
    "Aspect",
    "DamageReport",
    "DetonationResult",
    "RegenerationResult",
    "SightResult",
    "UnleashOutcome",
    "UnleashResolver",
    "DETONATION_RADIUS",
    "SIGHT_DURATION",
]
