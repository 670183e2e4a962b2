"""Repeating chat macros keyed by a never-reused integer id."""

import asyncio
import sys
from typing import Dict, List

from harvester.domain.models import Script


def _log(msg: str):
    print(msg, file=sys.stderr)


class ScriptScheduler:
    """Runs each script as its own asyncio task that re-sends a chat line."""

    def __init__(self, chat):
        self._chat = chat
        self._scripts: Dict[int, Script] = {}
        self._next_id = 1

    def repeat(self, period_seconds: float, action_text: str) -> Script:
        """Start a script and return it. Raises ValueError on bad arguments."""
        if not period_seconds > 0:
            raise ValueError(f"period must be positive (got {period_seconds})")
        if not action_text or not action_text.strip():
            raise ValueError("action text is empty")

        script = Script(
            script_id=self._next_id,
            action_text=action_text,
            period_seconds=float(period_seconds),
        )
        self._next_id += 1
        script.handle = asyncio.create_task(self._tick_loop(script))
        self._scripts[script.script_id] = script
        return script

    def stop(self, script_id: int) -> bool:
        """Cancel and remove a script. Returns True if found."""
        script = self._scripts.pop(script_id, None)
        if script is None:
            return False
        if script.handle is not None:
            script.handle.cancel()
        return True

    def stop_all(self) -> int:
        ids = list(self._scripts)
        for script_id in ids:
            self.stop(script_id)
        return len(ids)

    def list(self) -> List[Script]:
        """Snapshot of active scripts in creation order."""
        return [
            Script(s.script_id, s.action_text, s.period_seconds)
            for s in self._scripts.values()
        ]

    def __len__(self) -> int:
        return len(self._scripts)

    async def _tick_loop(self, script: Script) -> None:
        while True:
            await asyncio.sleep(script.period_seconds)
            try:
                self._chat.send(script.action_text)
            except Exception as e:
                _log(f"[ScriptScheduler] script #{script.script_id} send failed: {e}")
