"""Simple command parsing utilities for the development CLI."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class CLICommand:
    """Result of parsing a command string."""

    name: str
    args: List[str]


def parse_command(line: str) -> Optional[CLICommand]:
    """Parse ``/name arg ...`` into a :class:`CLICommand`.

    Lines not starting with ``/`` and lines with unbalanced quotes yield
    ``None``. Quoted arguments keep their spaces.
    """

    line = line.strip()
    if not line.startswith("/"):
        return None
    try:
        parts = shlex.split(line[1:])
    except ValueError:
        return None
    if not parts:
        return None
    return CLICommand(parts[0].lower(), parts[1:])


__all__ = ["CLICommand", "parse_command"]
