"""components package."""

from .caster_stats import CasterStats
from .disposition import Disposition, FRIENDLY, HOSTILE, NEUTRAL
from .effects import ActiveEffect, Effects
from .health import Health
from .name import Name
from .position import Position

__all__ = [
    "ActiveEffect",
    "CasterStats",
    "Disposition",
    "Effects",
    "Health",
    "Name",
    "Position",
    "FRIENDLY",
    "HOSTILE",
    "NEUTRAL",
]
