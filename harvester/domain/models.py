"""Domain data models"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Position:
    """Integer block coordinates in the world."""

    x: int
    y: int
    z: int

    def offset(self, dx: int, dy: int, dz: int) -> "Position":
        return Position(self.x + dx, self.y + dy, self.z + dz)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "z": self.z}

    @staticmethod
    def from_dict(payload: Dict[str, Any]) -> "Position":
        return Position(
            x=int(payload.get("x", 0)),
            y=int(payload.get("y", 0)),
            z=int(payload.get("z", 0)),
        )

    def __str__(self) -> str:
        return f"{self.x}, {self.y}, {self.z}"


class HarvestState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STORAGE_FULL = "storage_full"


class TransferMode(Enum):
    """Window click modes understood by the container port."""

    CLICK = 0  # plain left click: pick up / place
    SHIFT = 1  # shift-click: move the whole stack to the other side


@dataclass(frozen=True)
class ItemStack:
    name: str
    count: int = 1


@dataclass
class ContainerHandle:
    """An open window as reported by the world."""

    window_id: int
    kind: str  # e.g. "minecraft:generic_9x3"
    title: str = ""
    ref: Any = None  # adapter-private window object


@dataclass
class Script:
    """A repeating chat macro started by ``!repeat``."""

    script_id: int
    action_text: str
    period_seconds: float
    handle: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)
