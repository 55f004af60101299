"""Position component."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Position:
    """Token centre in canvas pixels."""

    x: float
    y: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


__all__ = ["Position"]
