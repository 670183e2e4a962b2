"""Events the world session pushes into the app."""

from dataclasses import dataclass, field
from typing import Any, Dict

SPAWN = "spawn"
CHAT = "chat"
WINDOW_OPEN = "window_open"
KICKED = "kicked"
ERROR = "error"
END = "end"


@dataclass
class WorldEvent:
    """Platform-agnostic event emitted by a world adapter."""

    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)
