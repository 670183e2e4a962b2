"""Wires the world session, the operator console and the harvesting components."""

import asyncio
import json
import sys
from typing import Any, Callable, Optional

from harvester.adapters.discord_adapter import DiscordConsoleAdapter, DiscordConsoleOutput
from harvester.adapters.terminal import TeeConsole, TerminalConsole, read_lines
from harvester.bots.commands import CommandDispatcher
from harvester.bots.console_session import ConsoleSession
from harvester.bots.harvest_cycle import HarvestCycle
from harvester.bots.script_scheduler import ScriptScheduler
from harvester.domain.aliases import AliasResolver
from harvester.domain.positions import PositionStore
from harvester.notify import WebhookNotifier
from harvester.ports.inbound import CHAT, END, ERROR, KICKED, SPAWN, WINDOW_OPEN, WorldEvent


def _log(msg: str):
    print(msg, file=sys.stderr)


def parse_kick_reason(reason: Any) -> str:
    """Readable text from a kick reason (plain string or JSON chat component)."""
    data = reason
    if isinstance(reason, str):
        try:
            data = json.loads(reason)
        except ValueError:
            return reason
    if isinstance(data, dict):
        extra = data.get("extra") or []
        first_extra = extra[0].get("text") if extra and isinstance(extra[0], dict) else None
        return str(data.get("text") or data.get("translate") or first_extra or json.dumps(data))
    return str(data)


class HarvesterApp:
    """Owns every long-lived task: event pump, console reader, reconnects."""

    def __init__(
        self,
        config,
        store,
        world_factory: Callable,
        console=None,
        notifier=None,
    ):
        self.config = config
        self.console = TeeConsole([console or TerminalConsole()])
        self.notifier = notifier or WebhookNotifier(config.webhook_url)
        self.events: asyncio.Queue = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._background = set()

        self.world = world_factory(config, self.emit)
        notifier_port = self.notifier if getattr(self.notifier, "enabled", True) else None
        self.positions = PositionStore(config, store)
        self.harvest = HarvestCycle(
            positions=self.positions,
            movement=self.world,
            containers=self.world,
            world=self.world,
            settings=config.harvest,
            console=self.console,
            notifier=notifier_port,
        )
        self.scripts = ScriptScheduler(self.world)
        self.dispatcher = CommandDispatcher(
            harvest=self.harvest,
            scripts=self.scripts,
            positions=self.positions,
            containers=self.world,
            console=self.console,
            prefix=config.command_prefix,
        )
        self.session = ConsoleSession(
            dispatcher=self.dispatcher,
            aliases=AliasResolver(config.aliases),
            chat=self.world,
            console=self.console,
            prefix=config.command_prefix,
        )

    # ------------------------------------------------------------------
    # World events
    # ------------------------------------------------------------------
    def emit(self, event: WorldEvent) -> None:
        """Thread-safe entry point for world adapters."""
        if self._loop is None:
            self.events.put_nowait(event)
        else:
            self._loop.call_soon_threadsafe(self.events.put_nowait, event)

    async def handle_event(self, event: WorldEvent) -> None:
        handler = {
            SPAWN: self._on_spawn,
            CHAT: self._on_chat,
            WINDOW_OPEN: self._on_window_open,
            KICKED: self._on_kicked,
            ERROR: self._on_error,
            END: self._on_end,
        }.get(event.kind)
        if handler is None:
            _log(f"[App] unhandled world event: {event.kind}")
            return
        handler(event.payload)

    def _on_spawn(self, payload) -> None:
        self.console.system("Bot successfully spawned!")
        self.console.system(f"Use {self.config.command_prefix}help for commands")

    def _on_chat(self, payload) -> None:
        self.console.chat(str(payload.get("text", "")))

    def _on_window_open(self, payload) -> None:
        self.console.system(f"Window opened: {payload.get('title') or payload.get('kind', '?')}")

    def _on_kicked(self, payload) -> None:
        self.console.error(f"Kicked: {parse_kick_reason(payload.get('reason', ''))}")

    def _on_error(self, payload) -> None:
        self.console.error(f"Error: {payload.get('message', 'unknown error')}")

    def _on_end(self, payload) -> None:
        self._background_notify(f"{self.config.username} disconnected from {self.config.host}")
        if not self.config.auto_reconnect:
            self.console.error("Disconnected.")
            return
        self.console.error(f"Disconnected. Reconnecting in {self.config.reconnect_delay:g}s...")
        self._schedule_reconnect()

    async def _pump_events(self) -> None:
        while True:
            event = await self.events.get()
            try:
                await self.handle_event(event)
            except Exception as e:
                _log(f"[App] event {event.kind} failed: {e}")

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------
    def connect(self) -> None:
        c = self.config
        self.console.system(f"Connecting to {c.host}:{c.port} as {c.username}...")
        try:
            self.world.connect()
        except Exception as e:
            self.console.error(f"Connection failed: {e}")
            if c.auto_reconnect:
                self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        await asyncio.sleep(self.config.reconnect_delay)
        self.connect()

    def _background_notify(self, text: str) -> None:
        if not getattr(self.notifier, "enabled", True):
            return
        task = asyncio.create_task(self.notifier.notify(text))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    async def run(self, lines=None) -> None:
        """Run until the console input ends (EOF) or the task is cancelled."""
        self._loop = asyncio.get_running_loop()
        self.console.system("Spawner Harvester")
        self.connect()
        pump = asyncio.create_task(self._pump_events())
        discord_client = self._start_discord()

        try:
            async for line in (lines if lines is not None else read_lines()):
                await self.session.handle_line(line)
        finally:
            stopped = self.scripts.stop_all()
            if stopped:
                _log(f"[App] stopped {stopped} scripts")
            if self.harvest.running:
                self.harvest.stop()
            pump.cancel()
            if self._reconnect_task is not None:
                self._reconnect_task.cancel()
            if discord_client is not None:
                await discord_client.close()

    def _start_discord(self) -> Optional[DiscordConsoleAdapter]:
        c = self.config
        if not (c.discord_token and c.discord_channel_id):
            return None
        client = DiscordConsoleAdapter(self.session, c.discord_channel_id)
        self.console.add(DiscordConsoleOutput(client, c.discord_channel_id))
        task = asyncio.create_task(client.start(c.discord_token))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return client
