"""Per-entity component storage."""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


class ComponentManager:
    """Attach at most one component of each class to an entity."""

    def __init__(self) -> None:
        # Maps component class -> {entity id: component instance}
        self._stores: Dict[Type[Any], Dict[int, Any]] = {}

    # ------------------------------------------------------------------
    # Component access API
    # ------------------------------------------------------------------
    def add_component(self, entity_id: int, component: Any) -> None:
        """Attach ``component`` to ``entity_id``, replacing one of the same class."""
        self._stores.setdefault(type(component), {})[entity_id] = component

    def get_component(self, entity_id: int, component_cls: Type[T]) -> Optional[T]:
        """Return the ``component_cls`` instance on ``entity_id``, if present."""
        return self._stores.get(component_cls, {}).get(entity_id)

    def remove_component(self, entity_id: int, component_cls: Type[T]) -> Optional[T]:
        """Detach and return the ``component_cls`` instance on ``entity_id``."""
        return self._stores.get(component_cls, {}).pop(entity_id, None)

    def entities_with(self, component_cls: Type[T]) -> Iterator[Tuple[int, T]]:
        """Iterate ``(entity_id, component)`` pairs for ``component_cls``."""
        yield from list(self._stores.get(component_cls, {}).items())

    def clear_entity(self, entity_id: int) -> None:
        """Drop every component attached to ``entity_id``."""
        for store in self._stores.values():
            store.pop(entity_id, None)


__all__ = ["ComponentManager"]
