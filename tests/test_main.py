"""Tests for the command-line entry point"""

from unittest.mock import patch

from harvester.__main__ import build_parser, main


def test_default_config_path():
    args = build_parser().parse_args([])
    assert args.config.endswith("config.json")


def test_keyboard_interrupt_exits_cleanly(capsys):
    def interrupted(coro):
        coro.close()
        raise KeyboardInterrupt

    with patch("harvester.__main__.asyncio.run", side_effect=interrupted):
        assert main(["--config", "missing.json"]) == 0

    assert "Exiting..." in capsys.readouterr().out
