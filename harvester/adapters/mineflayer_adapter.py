"""World ports backed by mineflayer through JSPyBridge.

Importing this module starts the Node.js bridge, so only the entry point
imports it. Bridge calls block, so the slow ones (pathing, clicks, block
activation) run in worker threads. JS event callbacks arrive on the bridge's
own thread and are handed to ``emit``, which must be thread-safe.
"""

import asyncio
import json
import sys
import time
from typing import Callable, List, Optional

from javascript import On, globalThis, require

from harvester.domain.models import ContainerHandle, ItemStack, Position, TransferMode
from harvester.ports.inbound import CHAT, END, ERROR, KICKED, SPAWN, WINDOW_OPEN, WorldEvent

mineflayer = require("mineflayer")
pathfinder = require("mineflayer-pathfinder")
vec3 = require("vec3")

_PATH_TIMEOUT = 120  # seconds a single goto may take
_CALL_TIMEOUT = 10
_OPEN_TIMEOUT = 3.0
_OPEN_POLL = 0.1


def _log(msg: str):
    print(msg, file=sys.stderr)


def _to_text(value) -> str:
    """Best-effort string form of a JS value (strings pass through)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return str(globalThis.JSON.stringify(value))
    except Exception:
        return str(value)


class MineflayerWorld:
    """Implements MovementPort, ContainerPort, WorldViewPort and ChatPort."""

    def __init__(self, config, emit: Callable[[WorldEvent], None]):
        self._config = config
        self._emit = emit
        self._bot = None
        self._spawned = False
        self._movements_ready = False

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def connect(self) -> None:
        options = {
            "host": self._config.host,
            "port": self._config.port,
            "username": self._config.username,
            "auth": self._config.auth,
            "hideErrors": True,
        }
        if self._config.version:
            options["version"] = self._config.version

        self._spawned = False
        self._movements_ready = False
        bot = mineflayer.createBot(options)
        bot.loadPlugin(pathfinder.pathfinder)
        self._bot = bot
        self._register_events(bot)

    def _setup_movements(self, bot) -> None:
        movements = pathfinder.Movements(bot)
        # Never dig or build, no parkour
        movements.canDig = False
        movements.digCost = 100
        movements.placeCost = 100
        movements.allowParkour = False
        movements.allowSprinting = True
        movements.infiniteLiquidDropdownDistance = True
        bot.pathfinder.setMovements(movements)
        self._movements_ready = True

    def _register_events(self, bot) -> None:
        @On(bot, "spawn")
        def on_spawn(this, *args):
            self._spawned = True
            try:
                self._setup_movements(bot)
            except Exception as e:
                _log(f"[Mineflayer] pathfinder setup failed: {e}")
            self._emit(WorldEvent(SPAWN))

        @On(bot, "messagestr")
        def on_message(this, message, position=None, *args):
            if position == "game_info":
                return
            self._emit(WorldEvent(CHAT, {"text": _to_text(message)}))

        @On(bot, "windowOpen")
        def on_window_open(this, window, *args):
            self._emit(WorldEvent(WINDOW_OPEN, {
                "title": self._window_title(window),
                "kind": _to_text(window.type),
            }))

        @On(bot, "kicked")
        def on_kicked(this, reason, *args):
            self._emit(WorldEvent(KICKED, {"reason": _to_text(reason)}))

        @On(bot, "error")
        def on_error(this, err, *args):
            message = getattr(err, "message", None) or _to_text(err)
            self._emit(WorldEvent(ERROR, {"message": str(message)}))

        @On(bot, "end")
        def on_end(this, *args):
            if self._bot is bot:
                self._bot = None
                self._spawned = False
                self._movements_ready = False
            self._emit(WorldEvent(END, {"reason": _to_text(args[0]) if args else ""}))

    # ------------------------------------------------------------------
    # ChatPort
    # ------------------------------------------------------------------
    def is_connected(self) -> bool:
        return self._bot is not None and self._spawned

    def send(self, text: str) -> None:
        if not self.is_connected():
            _log(f"[Mineflayer] not connected, dropped chat: {text!r}")
            return
        try:
            self._bot.chat(text)
        except Exception as e:
            _log(f"[Mineflayer] chat failed: {e}")

    # ------------------------------------------------------------------
    # MovementPort
    # ------------------------------------------------------------------
    async def go_to(self, position: Position, range_blocks: int = 1) -> bool:
        bot = self._bot
        if bot is None or not self._movements_ready:
            _log("[Mineflayer] pathfinding not initialized")
            return False
        goal = pathfinder.goals.GoalNear(position.x, position.y, position.z, range_blocks)
        try:
            await asyncio.to_thread(lambda: bot.pathfinder.goto(goal, timeout=_PATH_TIMEOUT))
            return True
        except Exception as e:
            if "GoalChanged" not in str(e) and "PathStopped" not in str(e):
                _log(f"[Mineflayer] pathfinding error: {e}")
            return False

    def stop(self) -> None:
        bot = self._bot
        if bot is None:
            return
        try:
            bot.pathfinder.stop()
            for control in ("forward", "sprint", "jump"):
                bot.setControlState(control, False)
        except Exception as e:
            _log(f"[Mineflayer] stop failed: {e}")

    def is_moving(self) -> bool:
        bot = self._bot
        if bot is None:
            return False
        try:
            return bool(bot.pathfinder.isMoving())
        except Exception:
            return False

    # ------------------------------------------------------------------
    # WorldViewPort
    # ------------------------------------------------------------------
    def block_at(self, position: Position) -> Optional[str]:
        bot = self._bot
        if bot is None:
            return None
        block = bot.blockAt(vec3(position.x, position.y, position.z))
        if block is None:
            return None
        return str(block.name)

    def empty_slot_count(self) -> int:
        bot = self._bot
        if bot is None:
            return 0
        return int(bot.inventory.emptySlotCount())

    # ------------------------------------------------------------------
    # ContainerPort
    # ------------------------------------------------------------------
    async def open_at(self, position: Position) -> Optional[ContainerHandle]:
        bot = self._bot
        if bot is None:
            return None
        block = bot.blockAt(vec3(position.x, position.y, position.z))
        if block is None:
            return None

        target = block.position.offset(0.5, 0.5, 0.5)
        try:
            await asyncio.to_thread(lambda: bot.lookAt(target, timeout=_CALL_TIMEOUT))
            await asyncio.to_thread(lambda: bot.activateBlock(block, timeout=_CALL_TIMEOUT))
        except Exception as e:
            # Some servers open the menu and still reject the promise
            _log(f"[Mineflayer] activate error: {e}")

        deadline = time.monotonic() + _OPEN_TIMEOUT
        while time.monotonic() < deadline:
            handle = self.current()
            if handle is not None:
                return handle
            await asyncio.sleep(_OPEN_POLL)
        return None

    def current(self) -> Optional[ContainerHandle]:
        bot = self._bot
        if bot is None:
            return None
        window = bot.currentWindow
        if window is None:
            return None
        return ContainerHandle(
            window_id=int(window.id),
            kind=_to_text(window.type),
            title=self._window_title(window),
            ref=window,
        )

    def slots(self, handle: ContainerHandle) -> List[Optional[ItemStack]]:
        if not self._is_current(handle):
            return []
        window = handle.ref
        out: List[Optional[ItemStack]] = []
        for index in range(int(window.slots.length)):
            out.append(self._to_stack(window.slots[index]))
        return out

    async def transfer(self, handle: ContainerHandle, slot: int, mode: TransferMode) -> bool:
        bot = self._bot
        if bot is None or not self._is_current(handle):
            return False
        before = self._to_stack(handle.ref.slots[slot]) if mode is TransferMode.SHIFT else None
        try:
            await asyncio.to_thread(lambda: bot.clickWindow(slot, 0, mode.value, timeout=_CALL_TIMEOUT))
        except Exception as e:
            _log(f"[Mineflayer] click {slot} failed: {e}")
            return False
        if before is not None and self._to_stack(handle.ref.slots[slot]) == before:
            # Shift-click was accepted but nothing moved: no room on the other side
            return False
        return True

    def close(self, handle: ContainerHandle) -> None:
        bot = self._bot
        if bot is None or not self._is_current(handle):
            return
        try:
            bot.closeWindow(handle.ref)
        except Exception as e:
            _log(f"[Mineflayer] close failed: {e}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _is_current(self, handle: ContainerHandle) -> bool:
        bot = self._bot
        if bot is None:
            return False
        window = bot.currentWindow
        return window is not None and int(window.id) == handle.window_id

    @staticmethod
    def _to_stack(item) -> Optional[ItemStack]:
        if item is None:
            return None
        return ItemStack(name=str(item.name), count=int(item.count))

    @staticmethod
    def _window_title(window) -> str:
        title = _to_text(window.title)
        try:
            parsed = json.loads(title)
        except ValueError:
            return title
        if isinstance(parsed, dict):
            return str(parsed.get("text") or parsed.get("translate") or title)
        return str(parsed)
