"""Disposition component."""

from __future__ import annotations

from dataclasses import dataclass

HOSTILE = -1
NEUTRAL = 0
FRIENDLY = 1


@dataclass
class Disposition:
    """Allegiance marker used to spare allies from area effects."""

    value: int = NEUTRAL


__all__ = ["Disposition", "HOSTILE", "NEUTRAL", "FRIENDLY"]
