"""Terminal console: timestamped output and a non-blocking line reader."""

import asyncio
import threading
import time
from typing import AsyncIterator, Iterable

PROMPT = "harvester > "


class TerminalConsole:
    """ConsoleOutput implementation that prints to stdout."""

    def __init__(self, stream=None):
        self._stream = stream

    def _write(self, tag: str, msg: str) -> None:
        ts = time.strftime("%H:%M:%S")
        print(f"[{ts}] [{tag}] {msg}", file=self._stream, flush=True)

    def system(self, msg: str) -> None:
        self._write("SYSTEM", msg)

    def info(self, msg: str) -> None:
        self._write("INFO", msg)

    def error(self, msg: str) -> None:
        self._write("ERROR", msg)

    def chat(self, msg: str) -> None:
        self._write("CHAT", msg)


class TeeConsole:
    """Fans every console line out to several outputs."""

    def __init__(self, outputs: Iterable = ()):
        self._outputs = list(outputs)

    def add(self, output) -> None:
        self._outputs.append(output)

    def system(self, msg: str) -> None:
        for out in self._outputs:
            out.system(msg)

    def info(self, msg: str) -> None:
        for out in self._outputs:
            out.info(msg)

    def error(self, msg: str) -> None:
        for out in self._outputs:
            out.error(msg)

    def chat(self, msg: str) -> None:
        for out in self._outputs:
            out.chat(msg)


async def read_lines(prompt: str = PROMPT) -> AsyncIterator[str]:
    """Yield stdin lines without blocking the event loop. Ends on EOF.

    ``input()`` runs on a daemon thread that hands lines over with
    ``call_soon_threadsafe``. A pending read never holds up loop shutdown,
    so cancelling the consumer (Ctrl-C) returns at once.
    """
    loop = asyncio.get_running_loop()
    lines: asyncio.Queue = asyncio.Queue()

    def reader():
        while True:
            try:
                line = input(prompt)
            except EOFError:
                line = None
            try:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            except RuntimeError:
                return  # loop already closed
            if line is None:
                return

    threading.Thread(target=reader, name="stdin-reader", daemon=True).start()
    while True:
        line = await lines.get()
        if line is None:
            return
        yield line
