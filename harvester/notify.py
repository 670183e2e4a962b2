"""Operator notifications through a Discord webhook."""

import sys
from datetime import datetime, timezone

import aiohttp


def _log(msg: str):
    print(msg, file=sys.stderr)


async def send_webhook_notification(message: str, webhook_url: str, title: str = "Harvester") -> bool:
    """Post ``message`` as an embed. Best effort; returns True on HTTP 204/200."""
    if not webhook_url:
        return False

    payload = {
        "username": "Harvester",
        "embeds": [
            {
                "title": title,
                "description": message[:4000],
                "color": 15105570,  # orange
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ],
    }
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(webhook_url, json=payload) as resp:
                if resp.status in (200, 204):
                    return True
                _log(f"[Notify] webhook returned {resp.status}")
                return False
    except Exception as e:
        _log(f"[Notify] webhook failed: {e}")
        return False


class WebhookNotifier:
    """NotificationPort implementation backed by a webhook URL."""

    def __init__(self, webhook_url: str):
        self._webhook_url = webhook_url

    @property
    def enabled(self) -> bool:
        return bool(self._webhook_url)

    async def notify(self, text: str) -> None:
        await send_webhook_notification(text, self._webhook_url)
