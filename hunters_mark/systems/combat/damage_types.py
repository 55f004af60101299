"""Damage type definitions."""

from __future__ import annotations

from enum import Enum


class DamageType(Enum):
    """Damage types a mark can deal."""

    FORCE = "force"
    NECROTIC = "necrotic"
    RADIANT = "radiant"
    PSYCHIC = "psychic"
    THUNDER = "thunder"

    @classmethod
    def from_config(cls, value: str | None) -> "DamageType":
        """Return the member for ``value``, defaulting to :attr:`FORCE`."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.FORCE


__all__ = ["DamageType"]
