"""Dice formula parsing and rolling."""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..errors import InvalidDiceExpression

# "2d8", "1d6+3", "1d10 - 1", "1d6[force]"
_DICE_RE = re.compile(
    r"^\s*(?P<count>\d+)\s*d\s*(?P<faces>\d+)\s*"
    r"(?:(?P<sign>[+-])\s*(?P<mod>\d+))?\s*"
    r"(?:\[(?P<flavor>[a-zA-Z ]+)\])?\s*$"
)


@dataclass(frozen=True)
class DiceFormula:
    count: int
    faces: int
    modifier: int = 0
    flavor: Optional[str] = None

    @property
    def minimum(self) -> int:
        return self.count + self.modifier

    @property
    def maximum(self) -> int:
        return self.count * self.faces + self.modifier


@dataclass
class RollResult:
    """Outcome of rolling one formula."""

    expression: str
    rolls: List[int] = field(default_factory=list)
    modifier: int = 0

    @property
    def total(self) -> int:
        return sum(self.rolls) + self.modifier


def parse(expression: str) -> DiceFormula:
    """Parse ``expression`` into a :class:`DiceFormula`."""

    match = _DICE_RE.match(expression or "")
    if match is None:
        raise InvalidDiceExpression(
            f"Cannot parse dice expression '{expression}'", {"expression": expression}
        )
    count = int(match["count"])
    faces = int(match["faces"])
    if count <= 0 or faces <= 0:
        raise InvalidDiceExpression(
            f"Dice expression '{expression}' needs at least one die with one face",
            {"expression": expression},
        )
    modifier = int(match["mod"] or 0)
    if match["sign"] == "-":
        modifier = -modifier
    return DiceFormula(count, faces, modifier, match["flavor"])


class DiceRoller:
    """Roll dice formulas with an optionally seeded RNG."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def roll(self, expression: str) -> RollResult:
        formula = parse(expression)
        rolls = [self._rng.randint(1, formula.faces) for _ in range(formula.count)]
        return RollResult(expression=expression, rolls=rolls, modifier=formula.modifier)


__all__ = ["DiceFormula", "DiceRoller", "RollResult", "parse"]
