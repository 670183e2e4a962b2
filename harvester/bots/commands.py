"""Operator console commands (``!bones on``, ``!repeat`` and friends)."""

import math
from typing import Dict, List

from harvester.domain.models import Position, TransferMode


class UsageError(ValueError):
    """Invalid command arguments. The message is shown to the operator."""


# Normalize command spellings to handler keys
_COMMAND_ALIASES: Dict[str, str] = {
    "help": "help",
    "bones": "harvest",
    "harvest": "harvest",
    "gui": "window",
    "window": "window",
    "click": "click",
    "shift": "shift",
    "close": "close",
    "spawner": "source",
    "source": "source",
    "chest": "storage",
    "storage": "storage",
    "repeat": "repeat",
    "loop": "repeat",
    "list": "list",
    "scripts": "list",
    "stop": "stop",
    "unloop": "stop",
    "status": "status",
}

_HELP = [
    ("bones on/off", "Toggle the harvester"),
    ("gui", "Show current window"),
    ("click <slot>", "Click window slot"),
    ("shift <slot>", "Shift-click slot"),
    ("close", "Close window"),
    ("spawner x y z", "Set source (spawner) position"),
    ("chest x y z", "Set storage (chest) position"),
    ("repeat <sec> <text>", "Send <text> every <sec> seconds"),
    ("list", "List active scripts"),
    ("stop <id>", "Stop a script by ID"),
    ("status", "Show harvester state and positions"),
]


def _parse_int(token: str, usage: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise UsageError(usage) from None


def _parse_position(args: List[str], usage: str) -> Position:
    if len(args) != 3:
        raise UsageError(usage)
    x, y, z = (_parse_int(a, f"Invalid coordinates. {usage}") for a in args)
    return Position(x, y, z)


class CommandDispatcher:
    """Parses one command line (prefix already stripped) and runs it.

    All output goes to the injected console; nothing is returned.
    """

    def __init__(self, harvest, scripts, positions, containers, console, prefix: str = "!"):
        self._harvest = harvest
        self._scripts = scripts
        self._positions = positions
        self._containers = containers
        self._console = console
        self._prefix = prefix

    async def dispatch(self, text: str) -> None:
        args = text.lower().split()
        if not args:
            self._console.error(f"Empty command. Type {self._prefix}help")
            return

        cmd = args[0]
        key = _COMMAND_ALIASES.get(cmd)
        if key is None:
            self._console.error(f"Unknown command: {cmd}. Type {self._prefix}help")
            return

        handler = getattr(self, f"_cmd_{key}")
        try:
            await handler(args[1:])
        except UsageError as e:
            self._console.error(str(e))

    def _usage(self, synopsis: str) -> str:
        return f"Usage: {self._prefix}{synopsis}"

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    async def _cmd_help(self, args: List[str]) -> None:
        self._console.system("=== Commands ===")
        width = max(len(synopsis) for synopsis, _ in _HELP) + len(self._prefix)
        for synopsis, text in _HELP:
            self._console.info(f"{(self._prefix + synopsis).ljust(width)} - {text}")
        self._console.info(f"{'(No prefix)'.ljust(width)} - Send chat message")

    async def _cmd_harvest(self, args: List[str]) -> None:
        if args == ["on"]:
            if not self._harvest.start() and self._harvest.running:
                self._console.info("Harvester already running.")
        elif args == ["off"]:
            self._harvest.stop()
        else:
            raise UsageError(self._usage("bones on/off"))

    async def _cmd_window(self, args: List[str]) -> None:
        handle = self._containers.current()
        if handle is None:
            self._console.info("No window open.")
            return
        self._console.system(f"Window: {handle.title or '(untitled)'} [{handle.kind}]")
        shown = 0
        for index, item in enumerate(self._containers.slots(handle)):
            if item is None:
                continue
            self._console.info(f"  [{index}] {item.name} x{item.count}")
            shown += 1
        if not shown:
            self._console.info("  (empty)")

    async def _cmd_click(self, args: List[str]) -> None:
        await self._click(args, TransferMode.CLICK, "click <slot>")

    async def _cmd_shift(self, args: List[str]) -> None:
        await self._click(args, TransferMode.SHIFT, "shift <slot>")

    async def _click(self, args: List[str], mode: TransferMode, synopsis: str) -> None:
        usage = self._usage(synopsis)
        if len(args) != 1:
            raise UsageError(usage)
        slot = _parse_int(args[0], usage)
        if slot < 0:
            raise UsageError(usage)

        handle = self._containers.current()
        if handle is None:
            self._console.error("No window open.")
            return
        verb = "Clicked" if mode is TransferMode.CLICK else "Shift-clicked"
        if await self._containers.transfer(handle, slot, mode):
            self._console.system(f"{verb} slot {slot}")
        else:
            self._console.error(f"Click on slot {slot} failed")

    async def _cmd_close(self, args: List[str]) -> None:
        handle = self._containers.current()
        if handle is None:
            self._console.info("No window open.")
            return
        self._containers.close(handle)
        self._console.system("Window closed.")

    async def _cmd_source(self, args: List[str]) -> None:
        position = _parse_position(args, self._usage("spawner <x> <y> <z>"))
        if self._positions.set_source(position):
            self._console.system(f"Spawner position updated to {position}")
        else:
            self._console.error(f"Failed to save config (spawner set to {position} for this session)")

    async def _cmd_storage(self, args: List[str]) -> None:
        position = _parse_position(args, self._usage("chest <x> <y> <z>"))
        if self._positions.set_storage(position):
            self._console.system(f"Chest position updated to {position}")
        else:
            self._console.error(f"Failed to save config (chest set to {position} for this session)")

    async def _cmd_repeat(self, args: List[str]) -> None:
        usage = self._usage("repeat <seconds> <command>")
        if len(args) < 2:
            raise UsageError(usage)
        try:
            seconds = float(args[0])
        except ValueError:
            raise UsageError(f"Invalid arguments. {usage}") from None
        if not math.isfinite(seconds):
            raise UsageError(f"Invalid arguments. {usage}")

        text = " ".join(args[1:])
        try:
            script = self._scripts.repeat(seconds, text)
        except ValueError:
            raise UsageError(f"Invalid arguments. {usage}") from None
        self._console.system(
            f'Script #{script.script_id} started: "{script.action_text}" every {seconds:g}s'
        )

    async def _cmd_list(self, args: List[str]) -> None:
        scripts = self._scripts.list()
        if not scripts:
            self._console.info("No active scripts running.")
            return
        self._console.system("=== Active Scripts ===")
        for script in scripts:
            self._console.info(
                f'#{script.script_id}: "{script.action_text}" (every {script.period_seconds:g}s)'
            )

    async def _cmd_stop(self, args: List[str]) -> None:
        usage = self._usage("stop <id>")
        if len(args) != 1:
            raise UsageError(usage)
        script_id = _parse_int(args[0], usage)
        if self._scripts.stop(script_id):
            self._console.system(f"Script #{script_id} stopped.")
        else:
            self._console.error(f"Script #{script_id} not found.")

    async def _cmd_status(self, args: List[str]) -> None:
        self._console.system("=== Status ===")
        self._console.info(f"Harvester: {self._harvest.state.value}")
        self._console.info(f"Spawner:   {self._positions.source_position}")
        self._console.info(f"Chest:     {self._positions.storage_position}")
        self._console.info(f"Scripts:   {len(self._scripts.list())} active")
