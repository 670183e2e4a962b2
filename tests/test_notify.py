"""Tests for the webhook notifier"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from harvester.notify import WebhookNotifier, send_webhook_notification


def _mock_session(status=204, post_error=None):
    resp = MagicMock()
    resp.status = status

    post_ctx = MagicMock()
    post_ctx.__aenter__ = AsyncMock(return_value=resp)
    post_ctx.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    if post_error is not None:
        session.post.side_effect = post_error
    else:
        session.post.return_value = post_ctx
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return session


class TestSendWebhookNotification:
    @pytest.mark.asyncio
    async def test_no_url_is_noop(self):
        with patch("harvester.notify.aiohttp.ClientSession") as cls:
            assert await send_webhook_notification("hi", "") is False
            cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_posts_embed(self):
        session = _mock_session(status=204)
        with patch("harvester.notify.aiohttp.ClientSession", return_value=session):
            ok = await send_webhook_notification("Storage full", "https://hook", title="Alert")

        assert ok is True
        url = session.post.call_args.args[0]
        payload = session.post.call_args.kwargs["json"]
        assert url == "https://hook"
        assert payload["embeds"][0]["title"] == "Alert"
        assert payload["embeds"][0]["description"] == "Storage full"

    @pytest.mark.asyncio
    async def test_http_error_returns_false(self):
        session = _mock_session(status=500)
        with patch("harvester.notify.aiohttp.ClientSession", return_value=session):
            assert await send_webhook_notification("x", "https://hook") is False

    @pytest.mark.asyncio
    async def test_network_error_returns_false(self):
        session = _mock_session(post_error=OSError("unreachable"))
        with patch("harvester.notify.aiohttp.ClientSession", return_value=session):
            assert await send_webhook_notification("x", "https://hook") is False


class TestWebhookNotifier:
    def test_enabled_only_with_url(self):
        assert WebhookNotifier("https://hook").enabled is True
        assert WebhookNotifier("").enabled is False

    @pytest.mark.asyncio
    async def test_notify_forwards_to_webhook(self):
        with patch("harvester.notify.send_webhook_notification", new=AsyncMock(return_value=True)) as send:
            await WebhookNotifier("https://hook").notify("hello")
        send.assert_awaited_once_with("hello", "https://hook")
