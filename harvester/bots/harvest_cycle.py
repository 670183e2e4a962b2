"""The harvest loop: walk to the source, loot it, walk to storage, deposit."""

import asyncio
import re
import sys
from typing import Callable, Optional, Tuple

from harvester.domain.models import ContainerHandle, HarvestState, Position, TransferMode

# Consecutive failed deposits before the storage is treated as full. This is
# a heuristic; the server never confirms that a container is full.
STORAGE_FULL_THRESHOLD = 3

SEARCH_RADIUS = 2
SOURCE_BLOCK_KEYWORDS = ("spawner", "chest", "skull", "head")

_GENERIC_WINDOW_RE = re.compile(r"^(?:minecraft:)?generic_9x(\d)$")
_DEFAULT_CONTAINER_SLOTS = 27


def _log(msg: str):
    print(msg, file=sys.stderr)


def _is_empty_block(name: Optional[str]) -> bool:
    return not name or name.endswith("air")


def container_slot_count(kind: str) -> int:
    """Number of container slots before the player-inventory section starts."""
    m = _GENERIC_WINDOW_RE.match(kind or "")
    if m:
        return 9 * int(m.group(1))
    return _DEFAULT_CONTAINER_SLOTS


def find_interactable(
    block_at: Callable[[Position], Optional[str]],
    center: Position,
    radius: int = SEARCH_RADIUS,
) -> Optional[Tuple[Position, str]]:
    """Return the block to use at ``center``.

    The exact block wins when it is solid. Otherwise the nearest block in the
    surrounding cube whose name looks like a harvest source is used.
    """
    name = block_at(center)
    if not _is_empty_block(name):
        return center, name

    best = None
    best_dist = None
    for dx in range(-radius, radius + 1):
        for dy in range(-radius, radius + 1):
            for dz in range(-radius, radius + 1):
                candidate = center.offset(dx, dy, dz)
                name = block_at(candidate)
                if _is_empty_block(name):
                    continue
                if not any(keyword in name for keyword in SOURCE_BLOCK_KEYWORDS):
                    continue
                dist = dx * dx + dy * dy + dz * dz
                if best_dist is None or dist < best_dist:
                    best, best_dist = (candidate, name), dist
    return best


class HarvestCycle:
    """Owns the harvesting loop and its STOPPED / RUNNING / STORAGE_FULL state.

    Only one pass touches the world at a time. ``stop()`` ends a pass at its
    next step (an in-flight interaction completes first) and a loop started
    after it waits for the superseded loop to finish.
    """

    def __init__(
        self,
        positions,
        movement,
        containers,
        world,
        settings,
        console,
        notifier=None,
    ):
        self._positions = positions
        self._movement = movement
        self._containers = containers
        self._world = world
        self._settings = settings
        self._console = console
        self._notifier = notifier
        self._state = HarvestState.STOPPED
        self._generation = 0
        self._in_pass = False
        self._task: Optional[asyncio.Task] = None
        self._notify_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> HarvestState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is HarvestState.RUNNING

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self) -> bool:
        """Start the loop. Returns False when nothing was started."""
        if self._state is HarvestState.RUNNING:
            return False
        if self._state is HarvestState.STORAGE_FULL:
            self._console.error("Storage is full. Empty it, then turn the harvester off and on again.")
            return False

        self._state = HarvestState.RUNNING
        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation, self._task))
        self._console.system("Harvester: STARTED")
        return True

    def stop(self) -> None:
        self._state = HarvestState.STOPPED
        self._movement.stop()
        task = self._task
        # Between passes the loop only sleeps, so it can go right away
        if task is not None and not task.done() and not self._in_pass:
            task.cancel()
        self._console.system("Harvester: STOPPED")

    def _is_current(self, generation: int) -> bool:
        return self.running and generation == self._generation

    def _alive(self, generation: Optional[int]) -> bool:
        return generation is None or self._is_current(generation)

    async def _run(self, generation: int, previous: Optional[asyncio.Task] = None) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        s = self._settings
        while self._is_current(generation):
            try:
                self._in_pass = True
                try:
                    await self.run_pass(generation)
                finally:
                    self._in_pass = False
                if self._is_current(generation):
                    self._console.system(f"Waiting {s.cycle_delay:g}s...")
                    await asyncio.sleep(s.cycle_delay)
            except Exception as e:
                self._console.error(f"Harvest error: {e}")
                self._movement.stop()
                await asyncio.sleep(s.error_cooldown)
        _log(f"[HarvestCycle] loop #{generation} exited ({self._state.value})")

    # ------------------------------------------------------------------
    # One pass
    # ------------------------------------------------------------------
    async def run_pass(self, generation: Optional[int] = None) -> None:
        """Walk to the source, loot it, walk to storage and deposit.

        The loop passes its generation so a stop or restart ends the pass at
        the next step. Without one the pass runs to completion.
        """
        s = self._settings
        self._movement.stop()
        await asyncio.sleep(s.settle_delay)
        if not self._alive(generation):
            return

        source = self._positions.source_position
        self._console.system(f"-> Walking to source ({source})...")
        if not await self._movement.go_to(source, s.harvest_range):
            self._console.error("Could not reach the source, trying to open it anyway")
        await asyncio.sleep(s.settle_delay)
        if not self._alive(generation):
            return

        self._console.system("-> Opening source...")
        window = await self._open_source(self._positions.source_position)
        if window is None:
            self._console.error("Source menu failed")
            return
        if not self._alive(generation):
            self._containers.close(window)
            return

        self._console.system(f"-> Clicking slot {s.collect_slot}...")
        if not await self._containers.transfer(window, s.collect_slot, TransferMode.CLICK):
            self._console.error(f"Click on slot {s.collect_slot} failed")
        await asyncio.sleep(s.open_delay)

        self._console.system("-> Collecting...")
        collected = await self._collect(window, generation)
        self._console.system(f"Got {collected} stacks")
        self._containers.close(window)
        await asyncio.sleep(s.settle_delay)
        if not self._alive(generation):
            return

        storage = self._positions.storage_position
        self._console.system(f"-> Walking to storage ({storage})...")
        if not await self._movement.go_to(storage, s.deposit_range):
            self._console.error("Could not reach the storage, trying to open it anyway")
        await asyncio.sleep(s.settle_delay)
        if not self._alive(generation):
            return

        self._console.system("-> Depositing...")
        await self._deposit(self._positions.storage_position, generation)

    async def _open_source(self, position: Position) -> Optional[ContainerHandle]:
        found = find_interactable(self._world.block_at, position)
        if found is None:
            self._console.error(f"No interactable block found near {position}")
            return None
        target, name = found
        if target != position:
            self._console.system(f"Found {name} at {target}")
        self._console.system(f"Interacting with: {name}")
        return await self._containers.open_at(target)

    async def _collect(self, window: ContainerHandle, generation: Optional[int]) -> int:
        s = self._settings
        collected = 0
        for slot in range(container_slot_count(window.kind)):
            if not self._alive(generation):
                break
            items = self._containers.slots(window)
            if slot >= len(items):
                break
            item = items[slot]
            if item is None or s.resource_item not in item.name:
                continue
            if self._world.empty_slot_count() == 0:
                self._console.info("Inventory full, stopping collection")
                break
            if await self._containers.transfer(window, slot, TransferMode.SHIFT):
                collected += 1
                await asyncio.sleep(s.click_delay)
        return collected

    async def _deposit(self, position: Position, generation: Optional[int]) -> None:
        s = self._settings
        if _is_empty_block(self._world.block_at(position)):
            self._console.error(f"Storage not found at {position}!")
            return

        window = await self._containers.open_at(position)
        if window is None:
            self._console.error("Storage did not open!")
            return

        deposited = 0
        failures = 0
        slot = container_slot_count(window.kind)
        while self._alive(generation) and self._state is not HarvestState.STORAGE_FULL:
            items = self._containers.slots(window)
            if slot >= len(items):
                break
            item = items[slot]
            slot += 1
            if item is None or s.resource_item not in item.name:
                continue
            if await self._containers.transfer(window, slot - 1, TransferMode.SHIFT):
                deposited += 1
                failures = 0
                await asyncio.sleep(s.click_delay)
                continue
            failures += 1
            if failures >= STORAGE_FULL_THRESHOLD:
                self._mark_storage_full()
                break

        self._console.system(f"Deposited {deposited} stacks")
        self._containers.close(window)

    def _mark_storage_full(self) -> None:
        self._state = HarvestState.STORAGE_FULL
        self._movement.stop()
        message = f"Storage at {self._positions.storage_position} is full. Harvester halted."
        self._console.error(message)
        if self._notifier is not None:
            self._notify_task = asyncio.create_task(self._notifier.notify(message))
