"""Outbound ports: capabilities the core needs from the outside world.

Adapters implement these structurally; ordinary failures come back as
``False`` / ``None`` rather than exceptions.
"""

from typing import List, Optional, Protocol

from harvester.domain.models import ContainerHandle, ItemStack, Position, TransferMode


class MovementPort(Protocol):
    async def go_to(self, position: Position, range_blocks: int = 1) -> bool:
        """Walk until within ``range_blocks`` of ``position``. False on failure."""
        ...

    def stop(self) -> None:
        """Cancel pathing and release locomotion controls. Idempotent."""
        ...

    def is_moving(self) -> bool:
        ...


class ContainerPort(Protocol):
    async def open_at(self, position: Position) -> Optional[ContainerHandle]:
        ...

    def current(self) -> Optional[ContainerHandle]:
        ...

    def slots(self, handle: ContainerHandle) -> List[Optional[ItemStack]]:
        ...

    async def transfer(self, handle: ContainerHandle, slot: int, mode: TransferMode) -> bool:
        ...

    def close(self, handle: ContainerHandle) -> None:
        ...


class WorldViewPort(Protocol):
    def block_at(self, position: Position) -> Optional[str]:
        """Block name at ``position`` or None when unloaded."""
        ...

    def empty_slot_count(self) -> int:
        ...


class ChatPort(Protocol):
    def send(self, text: str) -> None:
        ...

    def is_connected(self) -> bool:
        ...


class ConsoleOutput(Protocol):
    def system(self, msg: str) -> None:
        ...

    def info(self, msg: str) -> None:
        ...

    def error(self, msg: str) -> None:
        ...

    def chat(self, msg: str) -> None:
        ...


class NotificationPort(Protocol):
    async def notify(self, text: str) -> None:
        ...
