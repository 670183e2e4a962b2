"""JSON-backed settings with environment overrides."""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from harvester.domain.models import Position

DEFAULT_CONFIG_PATH = Path("config") / "config.json"


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass
class HarvestSettings:
    source_position: Position = field(default_factory=lambda: Position(0, 64, 0))
    storage_position: Position = field(default_factory=lambda: Position(0, 64, 0))
    collect_slot: int = 13
    resource_item: str = "bone"
    harvest_range: int = 1
    deposit_range: int = 1
    cycle_delay: float = 5.0  # seconds between passes
    error_cooldown: float = 3.0  # seconds after an unexpected error
    settle_delay: float = 0.5
    open_delay: float = 0.8
    click_delay: float = 0.1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_position": self.source_position.to_dict(),
            "storage_position": self.storage_position.to_dict(),
            "collect_slot": self.collect_slot,
            "resource_item": self.resource_item,
            "harvest_range": self.harvest_range,
            "deposit_range": self.deposit_range,
            "cycle_delay": self.cycle_delay,
            "error_cooldown": self.error_cooldown,
            "settle_delay": self.settle_delay,
            "open_delay": self.open_delay,
            "click_delay": self.click_delay,
        }

    @staticmethod
    def from_dict(payload: Dict[str, Any]) -> "HarvestSettings":
        defaults = HarvestSettings()
        return HarvestSettings(
            source_position=Position.from_dict(payload.get("source_position", {}))
            if "source_position" in payload
            else defaults.source_position,
            storage_position=Position.from_dict(payload.get("storage_position", {}))
            if "storage_position" in payload
            else defaults.storage_position,
            collect_slot=int(payload.get("collect_slot", defaults.collect_slot)),
            resource_item=str(payload.get("resource_item", defaults.resource_item)).lower(),
            harvest_range=max(0, int(payload.get("harvest_range", defaults.harvest_range))),
            deposit_range=max(0, int(payload.get("deposit_range", defaults.deposit_range))),
            cycle_delay=max(0.0, float(payload.get("cycle_delay", defaults.cycle_delay))),
            error_cooldown=max(0.0, float(payload.get("error_cooldown", defaults.error_cooldown))),
            settle_delay=max(0.0, float(payload.get("settle_delay", defaults.settle_delay))),
            open_delay=max(0.0, float(payload.get("open_delay", defaults.open_delay))),
            click_delay=max(0.0, float(payload.get("click_delay", defaults.click_delay))),
        )


@dataclass
class HarvesterConfig:
    host: str = "localhost"
    port: int = 25565
    username: str = "Harvester"
    version: Optional[str] = None
    auth: str = "offline"
    auto_reconnect: bool = True
    reconnect_delay: float = 5.0
    command_prefix: str = "!"
    aliases: Dict[str, str] = field(default_factory=dict)
    webhook_url: str = ""
    discord_token: str = ""
    discord_channel_id: int = 0
    harvest: HarvestSettings = field(default_factory=HarvestSettings)
    # Values the file held before environment overrides; written back on save
    file_values: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "version": self.version,
            "auth": self.auth,
            "auto_reconnect": self.auto_reconnect,
            "reconnect_delay": self.reconnect_delay,
            "command_prefix": self.command_prefix,
            "aliases": dict(self.aliases),
            "webhook_url": self.webhook_url,
            "discord_token": self.discord_token,
            "discord_channel_id": self.discord_channel_id,
            "harvest": self.harvest.to_dict(),
        }
        payload.update(self.file_values)
        return payload

    @staticmethod
    def from_dict(payload: Dict[str, Any]) -> "HarvesterConfig":
        aliases = payload.get("aliases", {})
        if not isinstance(aliases, dict):
            aliases = {}
        version = payload.get("version")
        return HarvesterConfig(
            host=str(payload.get("host", "localhost")),
            port=int(payload.get("port", 25565)),
            username=str(payload.get("username", "Harvester")),
            version=str(version) if version else None,
            auth=str(payload.get("auth", "offline")),
            auto_reconnect=bool(payload.get("auto_reconnect", True)),
            reconnect_delay=max(0.0, float(payload.get("reconnect_delay", 5.0))),
            command_prefix=str(payload.get("command_prefix", "!")) or "!",
            aliases={str(k).lower(): str(v) for k, v in aliases.items()},
            webhook_url=str(payload.get("webhook_url", "") or ""),
            discord_token=str(payload.get("discord_token", "") or ""),
            discord_channel_id=int(payload.get("discord_channel_id", 0) or 0),
            harvest=HarvestSettings.from_dict(payload.get("harvest", {}) or {}),
        )


def apply_env_overrides(config: HarvesterConfig) -> HarvesterConfig:
    """Secrets may come from the environment instead of the JSON file."""
    token = os.environ.get("HARVESTER_DISCORD_TOKEN")
    if token:
        config.file_values.setdefault("discord_token", config.discord_token)
        config.discord_token = token
    channel = os.environ.get("HARVESTER_DISCORD_CHANNEL_ID")
    if channel:
        try:
            channel_id = int(channel)
        except ValueError:
            _log(f"[Config] ignoring non-numeric HARVESTER_DISCORD_CHANNEL_ID: {channel!r}")
        else:
            config.file_values.setdefault("discord_channel_id", config.discord_channel_id)
            config.discord_channel_id = channel_id
    webhook = os.environ.get("HARVESTER_WEBHOOK_URL")
    if webhook:
        config.file_values.setdefault("webhook_url", config.webhook_url)
        config.webhook_url = webhook
    return config


class JsonConfigStore:
    """Persists a HarvesterConfig as pretty-printed JSON."""

    def __init__(self, path=DEFAULT_CONFIG_PATH):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> HarvesterConfig:
        if not self._path.exists():
            raise FileNotFoundError(f"Config file not found: {self._path}")
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Config file must hold a JSON object: {self._path}")
        return HarvesterConfig.from_dict(raw)

    def save(self, config: HarvesterConfig) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(
                json.dumps(config.to_dict(), ensure_ascii=False, indent=2) + "\n",
                encoding="utf-8",
            )
            tmp.replace(self._path)
            return True
        except Exception as e:
            _log(f"[Config] save failed: {e}")
            return False
