"""Display name component."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Name:
    value: str


__all__ = ["Name"]
