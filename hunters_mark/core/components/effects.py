"""Active effect component."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class ActiveEffect:
    """A named effect attached to an entity.

    ``remaining`` is the time left in seconds, ``None`` for effects that last
    until removed (mark indicators).
    """

    effect_id: int
    name: str
    icon: str
    origin: Optional[int] = None
    remaining: Optional[float] = None
    changes: List[Tuple[str, int]] = field(default_factory=list)
    flags: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Effects:
    """Every effect currently attached to one entity."""

    items: List[ActiveEffect] = field(default_factory=list)


__all__ = ["ActiveEffect", "Effects"]
