"""A second operator console in a Discord channel.

Messages posted in the configured channel go through the same ConsoleSession
as terminal lines; console output is mirrored back into that channel.
"""

import asyncio
import sys
from typing import List

import discord

_MAX_MESSAGE = 2000


def _log(msg: str):
    print(msg, file=sys.stderr)


def split_message(text: str, limit: int = _MAX_MESSAGE) -> List[str]:
    """Split on line boundaries so each chunk fits a Discord message."""
    chunks: List[str] = []
    current = ""
    for line in text.splitlines():
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


class DiscordConsoleOutput:
    """ConsoleOutput that batches lines and posts them to a channel."""

    def __init__(self, client: discord.Client, channel_id: int):
        self._client = client
        self._channel_id = channel_id
        self._pending: List[str] = []
        self._flush_task = None

    def _write(self, tag: str, msg: str) -> None:
        if self._client.is_closed():
            return
        self._pending.append(f"[{tag}] {msg}")
        if self._flush_task is None or self._flush_task.done():
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            self._flush_task = loop.create_task(self._flush())

    async def _flush(self) -> None:
        await asyncio.sleep(0)  # gather the lines written in this turn
        lines, self._pending = self._pending, []
        if not lines:
            return
        channel = self._client.get_channel(self._channel_id)
        if channel is None:
            # Not ready yet or no access to the channel
            _log(f"[Discord] channel {self._channel_id} unavailable, dropped {len(lines)} line(s)")
            return
        for chunk in split_message("\n".join(lines)):
            try:
                await channel.send(chunk)
            except discord.DiscordException as e:
                _log(f"[Discord] send failed: {e}")
                return

    def system(self, msg: str) -> None:
        self._write("SYSTEM", msg)

    def info(self, msg: str) -> None:
        self._write("INFO", msg)

    def error(self, msg: str) -> None:
        self._write("ERROR", msg)

    def chat(self, msg: str) -> None:
        self._write("CHAT", msg)


class DiscordConsoleAdapter(discord.Client):
    """Thin discord.Client that feeds channel messages to a ConsoleSession."""

    def __init__(self, session, channel_id: int, **discord_kwargs):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents, **discord_kwargs)
        self._session = session
        self._channel_id = channel_id

    async def on_ready(self):
        _log(f"[Discord] logged in as {self.user}, console channel {self._channel_id}")

    async def on_message(self, message: discord.Message):
        if message.author.bot:
            return
        if message.channel.id != self._channel_id:
            return
        await self._session.handle_line(message.content)
