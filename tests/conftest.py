"""Shared fakes for the world ports and the operator console."""

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from harvester.config import HarvestSettings, HarvesterConfig, JsonConfigStore
from harvester.domain.models import ContainerHandle, ItemStack, Position, TransferMode

SOURCE = Position(10, 64, 10)
STORAGE = Position(20, 64, 20)


class FakeConsole:
    """ConsoleOutput that records (level, message) pairs."""

    def __init__(self):
        self.lines: List[Tuple[str, str]] = []

    def system(self, msg):
        self.lines.append(("system", msg))

    def info(self, msg):
        self.lines.append(("info", msg))

    def error(self, msg):
        self.lines.append(("error", msg))

    def chat(self, msg):
        self.lines.append(("chat", msg))

    def text(self, level: Optional[str] = None) -> str:
        return "\n".join(m for lvl, m in self.lines if level is None or lvl == level)


class FakeWorld:
    """In-memory world implementing every outbound world port."""

    def __init__(self):
        self.blocks: Dict[Position, str] = {}
        self.windows: Dict[Position, Tuple[str, List[Optional[ItemStack]]]] = {}
        self.empty_slots = 36
        self.connected = True
        self.go_to_result = True
        # position -> bool, decides shift-click outcomes per container
        self.transfer_ok: Dict[Position, bool] = {}

        self.moves: List[Tuple[Position, int]] = []
        self.stops = 0
        self.opened: List[Position] = []
        self.transfers: List[Tuple[Position, int, TransferMode]] = []
        self.closed = 0
        self.sent: List[str] = []
        self.connects = 0

        self._current: Optional[ContainerHandle] = None
        self._current_pos: Optional[Position] = None
        self._next_window_id = 1

    # session
    def connect(self):
        self.connects += 1

    # ChatPort
    def send(self, text):
        self.sent.append(text)

    def is_connected(self):
        return self.connected

    # MovementPort
    async def go_to(self, position, range_blocks=1):
        self.moves.append((position, range_blocks))
        await asyncio.sleep(0)
        return self.go_to_result

    def stop(self):
        self.stops += 1

    def is_moving(self):
        return False

    # WorldViewPort
    def block_at(self, position):
        return self.blocks.get(position, "air")

    def empty_slot_count(self):
        return self.empty_slots

    # ContainerPort
    async def open_at(self, position):
        self.opened.append(position)
        await asyncio.sleep(0)
        if position not in self.windows:
            return None
        kind, _ = self.windows[position]
        self._current = ContainerHandle(window_id=self._next_window_id, kind=kind, title="Fake")
        self._current_pos = position
        self._next_window_id += 1
        return self._current

    def current(self):
        return self._current

    def slots(self, handle):
        if self._current is None or handle.window_id != self._current.window_id:
            return []
        return list(self.windows[self._current_pos][1])

    async def transfer(self, handle, slot, mode):
        pos = self._current_pos
        self.transfers.append((pos, slot, mode))
        await asyncio.sleep(0)
        if self._current is None or handle.window_id != self._current.window_id:
            return False
        ok = self.transfer_ok.get(pos, True)
        if ok and mode is TransferMode.SHIFT:
            self.windows[pos][1][slot] = None
        return ok

    def close(self, handle):
        self.closed += 1
        self._current = None
        self._current_pos = None

    # helpers
    def deposit_transfers(self):
        return [t for t in self.transfers if t[0] == STORAGE]


def make_settings(**overrides) -> HarvestSettings:
    values = dict(
        source_position=SOURCE,
        storage_position=STORAGE,
        cycle_delay=0.0,
        error_cooldown=0.0,
        settle_delay=0.0,
        open_delay=0.0,
        click_delay=0.0,
    )
    values.update(overrides)
    return HarvestSettings(**values)


def stock_world(bones_in_spawner: int = 2, bones_in_inventory: int = 2) -> FakeWorld:
    """World with a spawner menu (9x3) at SOURCE and a small chest at STORAGE."""
    world = FakeWorld()
    world.blocks[SOURCE] = "spawner"
    world.blocks[STORAGE] = "chest"
    spawner_slots: List[Optional[ItemStack]] = [None] * 27 + [None] * 36
    for i in range(bones_in_spawner):
        spawner_slots[i] = ItemStack("bone", 64)
    chest_slots: List[Optional[ItemStack]] = [None] * 27 + [None] * 36
    for i in range(bones_in_inventory):
        chest_slots[27 + i] = ItemStack("bone", 64)
    world.windows[SOURCE] = ("minecraft:generic_9x3", spawner_slots)
    world.windows[STORAGE] = ("minecraft:generic_9x3", chest_slots)
    return world


async def wait_for(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def console():
    return FakeConsole()


@pytest.fixture
def config_store(tmp_path):
    path = tmp_path / "config.json"
    store = JsonConfigStore(path)
    config = HarvesterConfig(harvest=make_settings())
    store.save(config)
    return store
