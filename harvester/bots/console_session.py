"""Routes one operator line to a command or to chat."""


class ConsoleSession:
    def __init__(self, dispatcher, aliases, chat, console, prefix: str = "!"):
        self._dispatcher = dispatcher
        self._aliases = aliases
        self._chat = chat
        self._console = console
        self._prefix = prefix

    async def handle_line(self, line: str) -> None:
        raw = line.strip()
        if not raw:
            return

        raw = self._aliases.resolve(raw)

        if raw.startswith(self._prefix):
            await self._dispatcher.dispatch(raw[len(self._prefix):])
            return

        if not self._chat.is_connected():
            self._console.error("Bot not connected.")
            return
        self._chat.send(raw)
        self._console.chat(f"[YOU] {raw}")
