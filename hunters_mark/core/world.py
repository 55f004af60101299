"""Host world: entity registry plus the collaborators the mark systems use."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from ..config import CONFIG, Config
from ..errors import NoVitality
from ..utils.dice import DiceRoller
from ..utils.observer import Notifier
from .attributes import AttributeStore
from .component_manager import ComponentManager
from .components.caster_stats import CasterStats
from .components.disposition import Disposition, HOSTILE
from .components.health import Health
from .components.name import Name
from .components.position import Position
from .effects import EffectManager
from .entity_manager import EntityManager
from .events import (
    EventBus,
    REST_COMPLETED,
    RestCompleted,
    VITALITY_CHANGED,
    VitalityChanged,
)
from .spatial.spatial_index import GridScale, SpatialGrid

if TYPE_CHECKING:
    from ..systems.marks.lifecycle import LifecycleReactor
    from ..systems.marks.mark_system import MarkEngine
    from ..systems.marks.unleash import UnleashResolver

logger = logging.getLogger(__name__)


class World:
    """Lightweight holder for managers and host collaborators."""

    def __init__(
        self,
        config: Config | None = None,
        roller: DiceRoller | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.config: Config = config or CONFIG
        self.grid = GridScale(self.config.grid.size, self.config.grid.distance)

        self.entity_manager = EntityManager()
        self.component_manager = ComponentManager()
        self.spatial_index = SpatialGrid(cell_size=self.grid.size)
        self.attributes = AttributeStore(self.entity_manager)
        self.effects = EffectManager(self.entity_manager, self.component_manager)
        self.bus = EventBus()
        self.roller = roller or DiceRoller()
        self.notifier = notifier or Notifier(self.config.event_log.path)
        # Structured engine events (applies, unleashes, cleanups) in order
        self.event_records: List[Dict[str, Any]] = []

        # Populated by bootstrap
        self.mark_engine: Optional["MarkEngine"] = None
        self.unleash_resolver: Optional["UnleashResolver"] = None
        self.lifecycle: Optional["LifecycleReactor"] = None

    # ------------------------------------------------------------------
    # Entity operations
    # ------------------------------------------------------------------
    def spawn_actor(
        self,
        name: str,
        x: float = 0,
        y: float = 0,
        *,
        hp: int = 10,
        max_hp: int | None = None,
        disposition: int = HOSTILE,
        classes: Dict[str, int] | None = None,
        proficiency: int | None = 2,
        wisdom_mod: int | None = 0,
    ) -> int:
        """Create an actor token at pixel ``(x, y)`` and return its id."""

        entity_id = self.entity_manager.create_entity()
        cm = self.component_manager
        cm.add_component(entity_id, Name(name))
        cm.add_component(entity_id, Health(cur=hp, max=max_hp if max_hp is not None else hp))
        cm.add_component(entity_id, Disposition(disposition))
        if classes is not None:
            cm.add_component(
                entity_id,
                CasterStats(classes=dict(classes), proficiency=proficiency, wisdom_mod=wisdom_mod),
            )
        self.place(entity_id, x, y)
        return entity_id

    def place(self, entity_id: int, x: float, y: float) -> None:
        """Move ``entity_id`` to pixel ``(x, y)``."""
        self.component_manager.add_component(entity_id, Position(x, y))
        self.spatial_index.insert(entity_id, (x, y))

    def unplace(self, entity_id: int) -> None:
        """Take ``entity_id`` off the canvas without destroying it."""
        self.component_manager.remove_component(entity_id, Position)
        self.spatial_index.remove(entity_id)

    async def destroy(self, entity_id: int) -> None:
        self.spatial_index.remove(entity_id)
        self.component_manager.clear_entity(entity_id)
        self.attributes.forget(entity_id)
        self.entity_manager.destroy_entity(entity_id)

    def name_of(self, entity_id: int) -> str:
        name = self.component_manager.get_component(entity_id, Name)
        return name.value if name is not None else f"Entity {entity_id}"

    def actors(self) -> List[int]:
        """Every live entity that could bear a mark."""
        return self.entity_manager.all_entities()

    # ------------------------------------------------------------------
    # Host-driven state changes
    # ------------------------------------------------------------------
    async def set_health(self, entity_id: int, value: int) -> int:
        """Write current vitality (clamped) and announce the change."""

        hp = self.component_manager.get_component(entity_id, Health)
        if hp is None:
            raise NoVitality(
                f"{self.name_of(entity_id)} has no hit points.", {"entity": entity_id}
            )
        old = hp.cur
        hp.cur = hp.clamped(value)
        await self.bus.publish(VITALITY_CHANGED, VitalityChanged(entity_id, old, hp.cur))
        return hp.cur

    async def complete_rest(self, entity_id: int, long_rest: bool = True) -> None:
        await self.bus.publish(REST_COMPLETED, RestCompleted(entity_id, long_rest))


__all__ = ["World"]
