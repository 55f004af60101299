"""User-facing commands.

Each command is the boundary of one user action: engine errors are turned
into notifications here and never propagate to the caller's loop.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

from ...core.components.disposition import FRIENDLY, HOSTILE
from ...errors import MarkError, PartialApplyError
from ...systems.marks.mark_system import ApplyResult, MarkStatus
from ...systems.marks.unleash import UnleashOutcome
from ...utils.dice import RollResult
from .command_parser import CLICommand

if TYPE_CHECKING:
    from ...core.world import World

logger = logging.getLogger(__name__)

# Asks the user which aspect to unleash; ``None`` means the prompt was closed.
AspectPrompt = Callable[[int, int], Awaitable[Optional[str]]]


def _report(world: "World", exc: MarkError) -> None:
    logger.info("Command failed: %s", exc)
    world.notifier.emit(exc.message, level=exc.severity.value, error_code=exc.error_code)


def _names(world: "World", entities: Iterable[int]) -> str:
    return ", ".join(world.name_of(e) for e in entities) or "none"


def _require(world: "World", attr: str) -> Any:
    system = getattr(world, attr, None)
    if system is None:
        raise RuntimeError(f"World has no {attr}; call bootstrap() first")
    return system


# ----------------------------------------------------------------------
# Mark commands
# ----------------------------------------------------------------------
async def apply_mark(world: "World", caster: int, targets: Iterable[int]) -> Optional[ApplyResult]:
    engine = _require(world, "mark_engine")
    try:
        return await engine.apply_marks(caster, targets)
    except PartialApplyError as exc:
        result = exc.result
        world.notifier.error(
            f"Mark application partially failed. Marked: {_names(world, result.marked)}. "
            f"Not marked: {_names(world, result.failed)}.",
            marked=list(result.marked),
            failed=list(result.failed),
        )
        return result
    except MarkError as exc:
        _report(world, exc)
        return None


async def unleash(
    world: "World",
    caster: int,
    target: int,
    aspect: Optional[str] = None,
    prompt: Optional[AspectPrompt] = None,
) -> Optional[UnleashOutcome]:
    """Unleash ``aspect``, asking ``prompt`` first when no aspect is given."""

    resolver = _require(world, "unleash_resolver")
    if aspect is None:
        if prompt is None:
            world.notifier.warn("Choose an aspect to unleash.")
            return None
        aspect = await prompt(caster, target)
        if aspect is None:
            logger.info("Unleash on %s cancelled by %s", target, caster)
            return None
    try:
        return await resolver.unleash(caster, target, aspect)
    except MarkError as exc:
        _report(world, exc)
        return None


async def remove_mark(world: "World", caster: int, target: int) -> bool:
    engine = _require(world, "mark_engine")
    try:
        return await engine.remove_mark(caster, target)
    except MarkError as exc:
        _report(world, exc)
        return False


async def roll_damage(world: "World", caster: int, target: int) -> Optional[RollResult]:
    engine = _require(world, "mark_engine")
    try:
        return await engine.roll_mark_damage(caster, target)
    except MarkError as exc:
        _report(world, exc)
        return None


async def status(world: "World", caster: int) -> Optional[MarkStatus]:
    engine = _require(world, "mark_engine")
    try:
        info = await engine.status(caster)
    except MarkError as exc:
        _report(world, exc)
        return None
    marks = "; ".join(f"{m.name} ({m.die})" for m in info.marks) or "No active marks."
    world.notifier.info(
        f"Mark Die: {info.die} ({info.damage_type}) • Capacity: {info.capacity} • "
        f"Uses: {info.uses_used} / {info.uses_max} ({info.uses_remaining} left). {marks}"
    )
    return info


# ----------------------------------------------------------------------
# Host simulation commands
# ----------------------------------------------------------------------
async def rest(world: "World", actor: int, long_rest: bool = True) -> None:
    """Finish a rest for ``actor``; the lifecycle reactor does the rest."""
    await world.complete_rest(actor, long_rest)


async def set_health(world: "World", actor: int, value: int) -> Optional[int]:
    try:
        return await world.set_health(actor, value)
    except MarkError as exc:
        _report(world, exc)
        return None


def spawn(
    world: "World",
    name: str,
    x: float,
    y: float,
    hp: int = 10,
    ranger_level: int = 0,
    wisdom_mod: int = 0,
    friendly: bool = False,
) -> int:
    classes: Dict[str, int] | None = {"ranger": ranger_level} if ranger_level > 0 else None
    entity = world.spawn_actor(
        name,
        x,
        y,
        hp=hp,
        disposition=FRIENDLY if friendly else HOSTILE,
        classes=classes,
        wisdom_mod=wisdom_mod,
    )
    world.notifier.info(f"Spawned {name} as {entity} at ({x}, {y}).")
    return entity


def advance(world: "World", seconds: float) -> int:
    expired = world.effects.advance(seconds)
    for entity, effect in expired:
        world.notifier.info(f"{effect.name} on {world.name_of(entity)} expired.")
    return len(expired)


# ----------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------
def _ids(args: List[str]) -> List[int]:
    return [int(a) for a in args]


async def execute(world: "World", command: CLICommand, state: Dict[str, Any]) -> Any:
    """Run a parsed CLI command. ``state['actor']`` is the selected caster."""

    name, args = command.name, command.args
    actor = state.get("actor")
    try:
        if name == "spawn":
            entity = spawn(
                world,
                args[0],
                float(args[1]),
                float(args[2]),
                hp=int(args[3]) if len(args) > 3 else 10,
                ranger_level=int(args[4]) if len(args) > 4 else 0,
                wisdom_mod=int(args[5]) if len(args) > 5 else 0,
                friendly=len(args) > 6 and args[6].lower() in ("friendly", "ally"),
            )
            if actor is None and len(args) > 4:
                state["actor"] = entity
            return entity
        if name == "select":
            state["actor"] = int(args[0])
            return state["actor"]
        if name == "hp":
            return await set_health(world, int(args[0]), int(args[1]))
        if name == "advance":
            return advance(world, float(args[0]))
        if name == "rest" and actor is not None:
            return await rest(world, actor, long_rest=not (args and args[0] == "short"))
        if name == "help":
            world.notifier.info(
                "Commands: /spawn name x y [hp ranger_level wis friendly], /select id, "
                "/apply ids..., /unleash id aspect, /remove id, /damage id, /status, "
                "/rest [short], /hp id value, /advance seconds"
            )
            return None
    except (IndexError, ValueError):
        logger.error("Invalid arguments for /%s: %s", name, args)
        return None

    if actor is None:
        world.notifier.warn("Select your Ranger first (/select id).")
        return None

    try:
        if name == "apply":
            return await apply_mark(world, actor, _ids(args))
        if name == "unleash":
            aspect = args[1] if len(args) > 1 else None
            return await unleash(world, actor, int(args[0]), aspect)
        if name == "remove":
            return await remove_mark(world, actor, int(args[0]))
        if name == "damage":
            return await roll_damage(world, actor, int(args[0]))
        if name == "status":
            return await status(world, actor)
    except (IndexError, ValueError):
        logger.error("Invalid arguments for /%s: %s", name, args)
        return None
    except MarkError as exc:
        _report(world, exc)
        return None

    logger.info("Unknown command: /%s", name)
    return None


__all__ = [
    "AspectPrompt",
    "advance",
    "apply_mark",
    "execute",
    "remove_mark",
    "rest",
    "roll_damage",
    "set_health",
    "spawn",
    "status",
    "unleash",
]
