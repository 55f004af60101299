from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

Point = Tuple[float, float]


@dataclass(frozen=True)
class GridScale:
    """Canvas scale: ``size`` pixels per square, ``distance`` units per square."""

    size: int = 50
    distance: float = 5.0

    def to_pixels(self, units: float) -> float:
        """Convert ``units`` of in-game distance to canvas pixels."""
        distance = self.distance or 5.0
        return units / distance * self.size


class SpatialGrid:
    """Bucketed index of token centres in pixel space."""

    def __init__(self, cell_size: float) -> None:
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.cell_size = cell_size
        self._cells: Dict[Tuple[int, int], Set[int]] = {}
        self._entity_pos: Dict[int, Point] = {}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _cell_coords(self, pos: Point) -> Tuple[int, int]:
        """Return integer cell coordinates for ``pos``."""
        x, y = pos
        return (math.floor(x / self.cell_size), math.floor(y / self.cell_size))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def insert(self, entity_id: int, pos: Point) -> None:
        """Insert ``entity_id`` at ``pos``, moving it if already indexed."""
        if entity_id in self._entity_pos:
            self.remove(entity_id)
        cell = self._cell_coords(pos)
        self._cells.setdefault(cell, set()).add(entity_id)
        self._entity_pos[entity_id] = pos

    def remove(self, entity_id: int) -> None:
        """Remove ``entity_id`` from the index."""
        pos = self._entity_pos.pop(entity_id, None)
        if pos is None:
            return
        cell = self._cell_coords(pos)
        entities = self._cells.get(cell)
        if entities is not None:
            entities.discard(entity_id)
            if not entities:
                self._cells.pop(cell, None)

    def position_of(self, entity_id: int) -> Point | None:
        return self._entity_pos.get(entity_id)

    def query_radius(self, pos: Point, radius: float) -> List[int]:
        """Return entity IDs within ``radius`` of ``pos``, nearest first."""
        cx_min, cy_min = self._cell_coords((pos[0] - radius, pos[1] - radius))
        cx_max, cy_max = self._cell_coords((pos[0] + radius, pos[1] + radius))
        r2 = radius * radius
        found: List[Tuple[float, int]] = []
        for cx in range(cx_min, cx_max + 1):
            for cy in range(cy_min, cy_max + 1):
                cell_entities = self._cells.get((cx, cy))
                if not cell_entities:
                    continue
                for ent in cell_entities:
                    ex, ey = self._entity_pos[ent]
                    dx = ex - pos[0]
                    dy = ey - pos[1]
                    d2 = dx * dx + dy * dy
                    if d2 <= r2:
                        found.append((d2, ent))
        found.sort()
        return [ent for _, ent in found]


__all__ = ["GridScale", "SpatialGrid"]
