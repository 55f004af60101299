"""Configuration loader for hunters_mark."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


CONFIG_PATH = Path(__file__).resolve().parents[1] / "config.yaml"

DAMAGE_TYPES = ("force", "necrotic", "radiant", "psychic", "thunder")

logger = logging.getLogger(__name__)


@dataclass
class MarkConfig:
    """World-level options for marks and Unleash."""

    indicator_icon: str = "icons/svg/target.svg"
    damage_type: str = "force"
    detonation_friendly_fire: bool = True
    # Read only by the legacy feature replacement, which lives outside this package.
    auto_replace_legacy_feature: bool = True


@dataclass
class GridConfig:
    """Canvas scale: ``size`` pixels per square, ``distance`` units per square."""

    size: int = 50
    distance: float = 5.0


@dataclass
class LoggingConfig:
    global_level: str = "INFO"
    module_levels: Dict[str, str] = field(default_factory=dict)


@dataclass
class EventLogConfig:
    path: Optional[str] = None
    retention_mb: int = 50


@dataclass
class Config:
    """Top level configuration dataclass."""

    marks: MarkConfig = field(default_factory=MarkConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    event_log: EventLogConfig = field(default_factory=EventLogConfig)


def _parse_damage_type(value: Any) -> str:
    damage_type = str(value or "force").lower()
    if damage_type not in DAMAGE_TYPES:
        logger.warning(
            "Unknown damage type '%s' in config; falling back to 'force'.", value
        )
        return "force"
    return damage_type


def _parse_config(data: dict[str, Any]) -> Config:
    """Convert raw ``data`` into :class:`Config`."""

    marks_data = data.get("marks") or {}
    marks = MarkConfig(
        indicator_icon=str(marks_data.get("indicator_icon", MarkConfig.indicator_icon)),
        damage_type=_parse_damage_type(marks_data.get("damage_type", "force")),
        detonation_friendly_fire=bool(marks_data.get("detonation_friendly_fire", True)),
        auto_replace_legacy_feature=bool(
            marks_data.get("auto_replace_legacy_feature", True)
        ),
    )

    grid_data = data.get("grid") or {}
    grid = GridConfig(
        size=int(grid_data.get("size", 50)),
        distance=float(grid_data.get("distance", 5)),
    )

    logging_data = data.get("logging") or {}
    log_cfg = LoggingConfig(
        global_level=str(logging_data.get("global_level", "INFO")).upper(),
        module_levels=dict(logging_data.get("module_levels") or {}),
    )

    event_log_data = data.get("event_log") or {}
    event_log = EventLogConfig(
        path=event_log_data.get("path"),
        retention_mb=int(event_log_data.get("retention_mb", 50)),
    )

    return Config(marks=marks, grid=grid, logging=log_cfg, event_log=event_log)


def load_config(path: Path = CONFIG_PATH) -> Config:
    """Load configuration from ``path`` and return a :class:`Config`."""

    path = Path(path)
    if path.is_file():
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        raw = {}
    return _parse_config(raw)


# Load configuration at module import time.
CONFIG = load_config()


__all__ = [
    "CONFIG",
    "CONFIG_PATH",
    "DAMAGE_TYPES",
    "Config",
    "MarkConfig",
    "GridConfig",
    "LoggingConfig",
    "EventLogConfig",
    "load_config",
]
