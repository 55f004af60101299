from __future__ import annotations

from typing import Callable, List

import pytest

from hunters_mark.config import Config
from hunters_mark.core.world import World
from hunters_mark.main import bootstrap
from hunters_mark.utils.dice import RollResult, parse


class FixedRoller:
    """Dice roller that turns every die up as ``value``."""

    def __init__(self, value: int) -> None:
        self.value = value
        self.calls: List[str] = []

    def roll(self, expression: str) -> RollResult:
        formula = parse(expression)
        self.calls.append(expression)
        return RollResult(expression, [self.value] * formula.count, formula.modifier)


@pytest.fixture
def world() -> World:
    return bootstrap(config=Config(), seed=1)


@pytest.fixture
def make_world() -> Callable[..., World]:
    def _make(roll: int = 4, config: Config | None = None) -> World:
        w = bootstrap(config=config or Config())
        w.roller = FixedRoller(roll)
        return w

    return _make
