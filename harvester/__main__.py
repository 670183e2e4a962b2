"""Entry point: ``python -m harvester [--config PATH]``."""

import argparse
import asyncio

from harvester.app import HarvesterApp
from harvester.config import DEFAULT_CONFIG_PATH, JsonConfigStore, apply_env_overrides


def _world_factory(config, emit):
    # Deferred: importing the adapter starts the Node.js bridge
    from harvester.adapters.mineflayer_adapter import MineflayerWorld

    return MineflayerWorld(config, emit)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="harvester", description="Spawner harvesting bot")
    parser.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="path to config.json")
    return parser


async def _main(config_path: str) -> None:
    store = JsonConfigStore(config_path)
    config = apply_env_overrides(store.load())
    app = HarvesterApp(config, store, _world_factory)
    await app.run()


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(_main(args.config))
    except KeyboardInterrupt:
        print("\nExiting...")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
