"""World bootstrap and a line-based development console."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, TextIO

from dotenv import load_dotenv

from .config import CONFIG_PATH, Config, load_config
from .core.world import World
from .persistence.mark_store import MarkStore
from .systems.marks.lifecycle import LifecycleReactor
from .systems.marks.mark_system import MarkEngine
from .systems.marks.unleash import UnleashResolver
from .utils.cli.command_parser import parse_command
from .utils.cli.commands import execute
from .utils.dice import DiceRoller

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HUNTERS_MARK_CONFIG"


def configure_logging(cfg: Config) -> None:
    """Apply global and per-module log levels from ``cfg``."""

    numeric_level = getattr(logging, cfg.logging.global_level, logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        force=True,
    )
    for module_name, level_str in cfg.logging.module_levels.items():
        module_numeric_level = getattr(logging, str(level_str).upper(), None)
        if module_numeric_level is not None:
            logging.getLogger(module_name).setLevel(module_numeric_level)
        else:
            logger.warning("Invalid log level '%s' for module '%s' in config.", level_str, module_name)


def bootstrap(
    config_path: str | Path | None = None,
    *,
    config: Config | None = None,
    seed: int | None = None,
) -> World:
    """Build a world with the mark systems wired to its event bus."""

    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    if config is None:
        path = config_path or os.getenv(CONFIG_ENV_VAR) or CONFIG_PATH
        config = load_config(Path(path))

    world = World(config=config, roller=DiceRoller(seed))
    store = MarkStore(world)
    world.mark_engine = MarkEngine(world, store)
    world.unleash_resolver = UnleashResolver(world, store)
    world.lifecycle = LifecycleReactor(world, store)
    world.lifecycle.register(world.bus)

    logger.info(
        "[Bootstrap] damage type %s, friendly fire %s, grid %spx/%s units",
        config.marks.damage_type,
        config.marks.detonation_friendly_fire,
        config.grid.size,
        config.grid.distance,
    )
    return world


async def run_cli(world: World, stream: TextIO = sys.stdin) -> None:
    """Read ``/commands`` from ``stream`` until EOF or ``/quit``."""

    state: Dict[str, Any] = {"actor": None}
    printed = 0
    for line in stream:
        command = parse_command(line)
        if command is None:
            continue
        if command.name in ("quit", "exit"):
            break
        await execute(world, command, state)
        for note in world.notifier.history[printed:]:
            print(f"[{note.level}] {note.message}")
        printed = len(world.notifier.history)


def main() -> None:
    world = bootstrap()
    configure_logging(world.config)
    asyncio.run(run_cli(world))


if __name__ == "__main__":
    main()
