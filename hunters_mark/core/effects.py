"""Attach, find, age and remove active effects on entities."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import StoreWriteFailed
from .component_manager import ComponentManager
from .components.effects import ActiveEffect, Effects
from .entity_manager import EntityManager

MARK_INDICATOR_FLAG = "mark_indicator"


class EffectManager:
    """Own the :class:`Effects` component of every entity."""

    def __init__(self, entity_manager: EntityManager, component_manager: ComponentManager) -> None:
        self._entities = entity_manager
        self._components = component_manager
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _effects(self, entity_id: int) -> Effects:
        effects = self._components.get_component(entity_id, Effects)
        if effects is None:
            effects = Effects()
            self._components.add_component(entity_id, effects)
        return effects

    async def _attach(self, entity_id: int, effect: ActiveEffect) -> ActiveEffect:
        await asyncio.sleep(0)
        if not self._entities.has_entity(entity_id):
            raise StoreWriteFailed(
                "Cannot attach an effect to a missing entity",
                {"entity": entity_id, "effect": effect.name},
            )
        self._effects(entity_id).items.append(effect)
        return effect

    # ------------------------------------------------------------------
    # Indicators
    # ------------------------------------------------------------------
    async def create_indicator(
        self, entity_id: int, *, icon: str, origin: int, label: str
    ) -> ActiveEffect:
        """Attach a mark indicator for ``origin``, reusing an existing one."""

        existing = self.find_indicator(entity_id, origin)
        if existing is not None:
            return existing
        effect = ActiveEffect(
            effect_id=next(self._ids),
            name=label,
            icon=icon,
            origin=origin,
            flags={MARK_INDICATOR_FLAG: True},
        )
        return await self._attach(entity_id, effect)

    def find_indicator(self, entity_id: int, origin: int) -> Optional[ActiveEffect]:
        for effect in self.effects_on(entity_id):
            if effect.flags.get(MARK_INDICATOR_FLAG) and effect.origin == origin:
                return effect
        return None

    async def remove_indicator(self, entity_id: int, origin: int) -> bool:
        """Remove the indicator placed by ``origin``; ``False`` if none."""

        effect = self.find_indicator(entity_id, origin)
        if effect is None:
            return False
        return await self.remove(entity_id, effect)

    def flagged_origins(self, entity_id: int, flag: str = MARK_INDICATOR_FLAG) -> List[int]:
        """Origins of the effects on ``entity_id`` carrying ``flag``."""

        origins = {e.origin for e in self.effects_on(entity_id) if e.flags.get(flag)}
        return sorted(o for o in origins if o is not None)

    # ------------------------------------------------------------------
    # Buffs
    # ------------------------------------------------------------------
    async def add_buff(
        self,
        entity_id: int,
        *,
        name: str,
        icon: str,
        origin: int,
        duration: float,
        changes: Iterable[Tuple[str, int]],
        flags: Optional[Dict[str, Any]] = None,
    ) -> ActiveEffect:
        effect = ActiveEffect(
            effect_id=next(self._ids),
            name=name,
            icon=icon,
            origin=origin,
            remaining=duration,
            changes=list(changes),
            flags=dict(flags or {}),
        )
        return await self._attach(entity_id, effect)

    def advance(self, seconds: float) -> List[Tuple[int, ActiveEffect]]:
        """Age timed effects by ``seconds`` and drop the expired ones."""

        expired: List[Tuple[int, ActiveEffect]] = []
        for entity_id, effects in self._components.entities_with(Effects):
            keep: List[ActiveEffect] = []
            for effect in effects.items:
                if effect.remaining is None:
                    keep.append(effect)
                    continue
                effect.remaining -= seconds
                if effect.remaining <= 0:
                    expired.append((entity_id, effect))
                else:
                    keep.append(effect)
            effects.items = keep
        return expired

    # ------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------
    def effects_on(self, entity_id: int) -> List[ActiveEffect]:
        effects = self._components.get_component(entity_id, Effects)
        return list(effects.items) if effects is not None else []

    async def remove(self, entity_id: int, effect: ActiveEffect) -> bool:
        await asyncio.sleep(0)
        effects = self._components.get_component(entity_id, Effects)
        if effects is None or effect not in effects.items:
            return False
        effects.items.remove(effect)
        return True


__all__ = ["EffectManager", "MARK_INDICATOR_FLAG"]
