"""Tests for HarvesterApp: world events, reconnects and the console loop"""

import asyncio
import json
import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from harvester.app import HarvesterApp, parse_kick_reason
from harvester.config import HarvesterConfig
from harvester.ports.inbound import CHAT, END, KICKED, SPAWN, WINDOW_OPEN, WorldEvent

from conftest import FakeConsole, FakeWorld, make_settings, wait_for


def _make_app(**config_kwargs):
    config = HarvesterConfig(harvest=make_settings(), reconnect_delay=0.0, **config_kwargs)
    world = FakeWorld()
    console = FakeConsole()
    notifier = MagicMock()
    notifier.enabled = True
    notifier.notify = AsyncMock()
    store = MagicMock()
    store.save.return_value = True
    app = HarvesterApp(config, store, lambda cfg, emit: world, console=console, notifier=notifier)
    return app, world, console, notifier


async def _lines(*items):
    for item in items:
        yield item
        await asyncio.sleep(0)


class TestParseKickReason:
    def test_plain_string(self):
        assert parse_kick_reason("Server closed") == "Server closed"

    def test_json_text(self):
        assert parse_kick_reason(json.dumps({"text": "Banned"})) == "Banned"

    def test_json_translate(self):
        assert parse_kick_reason(json.dumps({"translate": "multiplayer.disconnect.idling"})) == (
            "multiplayer.disconnect.idling"
        )

    def test_json_extra(self):
        reason = json.dumps({"text": "", "extra": [{"text": "You logged in from another location"}]})
        assert parse_kick_reason(reason) == "You logged in from another location"

    def test_dict_payload(self):
        assert parse_kick_reason({"text": "Kicked"}) == "Kicked"


class TestEvents:
    @pytest.mark.asyncio
    async def test_spawn_and_chat(self):
        app, _, console, _ = _make_app()
        await app.handle_event(WorldEvent(SPAWN))
        await app.handle_event(WorldEvent(CHAT, {"text": "<Steve> hi"}))
        assert "Bot successfully spawned!" in console.text("system")
        assert console.lines[-1] == ("chat", "<Steve> hi")

    @pytest.mark.asyncio
    async def test_window_open_and_kick(self):
        app, _, console, _ = _make_app()
        await app.handle_event(WorldEvent(WINDOW_OPEN, {"title": "Spawner", "kind": "minecraft:generic_9x3"}))
        await app.handle_event(WorldEvent(KICKED, {"reason": json.dumps({"text": "Bye"})}))
        assert "Window opened: Spawner" in console.text("system")
        assert "Kicked: Bye" in console.text("error")

    @pytest.mark.asyncio
    async def test_end_schedules_single_reconnect(self):
        app, world, console, notifier = _make_app()
        await app.handle_event(WorldEvent(END))
        await app.handle_event(WorldEvent(END))
        await wait_for(lambda: world.connects >= 1)
        await asyncio.sleep(0.01)
        assert world.connects == 1
        assert "Reconnecting in 0s" in console.text("error")
        notifier.notify.assert_awaited()

    @pytest.mark.asyncio
    async def test_end_without_auto_reconnect(self):
        app, world, console, notifier = _make_app(auto_reconnect=False)
        await app.handle_event(WorldEvent(END))
        await asyncio.sleep(0.01)
        assert world.connects == 0
        assert console.lines == [("error", "Disconnected.")]
        notifier.notify.assert_awaited_once_with("Harvester disconnected from localhost")

    @pytest.mark.asyncio
    async def test_emit_before_run_queues_event(self):
        app, *_ = _make_app()
        app.emit(WorldEvent(SPAWN))
        assert app.events.qsize() == 1


class TestRun:
    @pytest.mark.asyncio
    async def test_lines_reach_session_and_cleanup_runs(self):
        app, world, console, _ = _make_app()

        await app.run(_lines("!repeat 60 /sell all", "hello", "!status"))

        assert world.connects == 1
        assert world.sent == ["hello"]
        assert 'Script #1 started: "/sell all" every 60s' in console.text("system")
        assert "Scripts:   1 active" in console.text("info")
        assert len(app.scripts) == 0

    @pytest.mark.asyncio
    async def test_run_stops_running_harvest(self):
        app, world, console, _ = _make_app()
        app.config.harvest.cycle_delay = 10

        await app.run(_lines("!bones on"))

        assert app.harvest.running is False
        assert "Harvester: STOPPED" in console.text("system")
        done, _ = await asyncio.wait({app.harvest.task}, timeout=1.0)
        assert app.harvest.task in done

    @pytest.mark.asyncio
    async def test_events_emitted_during_run_are_handled(self):
        app, world, console, _ = _make_app()

        async def lines():
            app.emit(WorldEvent(CHAT, {"text": "server says hi"}))
            await wait_for(lambda: ("chat", "server says hi") in console.lines)
            yield "!list"

        await app.run(lines())
        assert ("info", "No active scripts running.") in console.lines

    @pytest.mark.asyncio
    async def test_connect_failure_schedules_reconnect(self):
        app, world, console, _ = _make_app()
        calls = []

        def flaky_connect():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("ECONNREFUSED")

        world.connect = flaky_connect

        async def lines():
            await wait_for(lambda: len(calls) >= 2)
            yield "!help"

        await app.run(lines())
        assert "Connection failed: ECONNREFUSED" in console.text("error")

    @pytest.mark.asyncio
    async def test_cancel_with_stdin_open_cleans_up(self):
        app, world, console, _ = _make_app()
        entered = threading.Event()
        released = threading.Event()

        def blocking_input(prompt=""):
            entered.set()
            released.wait(5)
            raise EOFError

        with patch("builtins.input", side_effect=blocking_input):
            task = asyncio.create_task(app.run())
            await wait_for(lambda: entered.is_set() and world.connects == 1)
            app.scripts.repeat(60, "/sell all")
            app.harvest.start()

            task.cancel()
            done, _ = await asyncio.wait({task}, timeout=0.5)
        released.set()

        assert task in done
        assert task.cancelled()
        assert len(app.scripts) == 0
        assert app.harvest.running is False
