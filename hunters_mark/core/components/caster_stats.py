"""Caster stats component."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class CasterStats:
    """Class levels and the two ability numbers that size the mark pool.

    ``classes`` maps a class identifier (``"ranger"``, ``"rogue"``...) to the
    number of levels taken in it.
    """

    classes: Dict[str, int] = field(default_factory=dict)
    proficiency: Optional[int] = 2
    wisdom_mod: Optional[int] = 0


__all__ = ["CasterStats"]
