"""Health component."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Health:
    """Track current and maximum vitality."""

    cur: int
    max: int

    def clamped(self, value: int) -> int:
        """Return ``value`` limited to ``[0, max]``."""
        return max(0, min(value, self.max))


__all__ = ["Health"]
