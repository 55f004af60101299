"""Level-indexed mark tables and per-caster limits.

Everything here is a pure function. Missing inputs (``None``, no stats)
fall to the lowest tier rather than raising.
"""

from __future__ import annotations

from typing import Optional

from ...core.components.caster_stats import CasterStats

CASTER_CLASS = "ranger"
DEFAULT_PROFICIENCY = 2

# (minimum level, value), highest breakpoint first
_MARK_DIE = ((17, "2d8"), (13, "1d12"), (9, "1d10"), (5, "1d8"))
_CAPACITY = ((14, 3), (6, 2))


def mark_die(level: Optional[int]) -> str:
    """Return the damage die a mark applied at ``level`` carries."""

    level = level or 0
    for minimum, die in _MARK_DIE:
        if level >= minimum:
            return die
    return "1d6"


def mark_capacity(level: Optional[int]) -> int:
    """Return how many targets one caster may have marked at once."""

    level = level or 0
    for minimum, capacity in _CAPACITY:
        if level >= minimum:
            return capacity
    return 1


def uses_per_day(proficiency: Optional[int], wisdom_mod: Optional[int]) -> int:
    """Return applications allowed per long rest; may be zero."""

    prof = DEFAULT_PROFICIENCY if proficiency is None else proficiency
    return max(0, prof + (wisdom_mod or 0))


def _caster_class_levels(stats: Optional[CasterStats]) -> list[int]:
    if stats is None:
        return []
    return [
        int(levels or 0)
        for identifier, levels in stats.classes.items()
        if CASTER_CLASS in identifier.lower()
    ]


def is_caster(stats: Optional[CasterStats]) -> bool:
    return bool(_caster_class_levels(stats))


def caster_level(stats: Optional[CasterStats]) -> int:
    """Levels in the marking class; 0 for anyone else."""

    levels = _caster_class_levels(stats)
    return levels[0] if levels else 0


def proficiency(stats: Optional[CasterStats]) -> int:
    if stats is None or stats.proficiency is None:
        return DEFAULT_PROFICIENCY
    return stats.proficiency


def wisdom_mod(stats: Optional[CasterStats]) -> int:
    if stats is None or stats.wisdom_mod is None:
        return 0
    return stats.wisdom_mod


def uses_for(stats: Optional[CasterStats]) -> int:
    return uses_per_day(proficiency(stats), wisdom_mod(stats))


__all__ = [
    "CASTER_CLASS",
    "caster_level",
    "is_caster",
    "mark_capacity",
    "mark_die",
    "proficiency",
    "uses_for",
    "uses_per_day",
    "wisdom_mod",
]
