"""Spawner Harvester: automated spawner looting bot."""

from harvester.config import HarvestSettings, HarvesterConfig, JsonConfigStore
from harvester.domain.models import (
    ContainerHandle,
    HarvestState,
    ItemStack,
    Position,
    Script,
    TransferMode,
)
from harvester.domain.aliases import AliasResolver
from harvester.domain.positions import PositionStore
from harvester.bots.harvest_cycle import HarvestCycle, STORAGE_FULL_THRESHOLD
from harvester.bots.script_scheduler import ScriptScheduler
from harvester.bots.commands import CommandDispatcher, UsageError
from harvester.bots.console_session import ConsoleSession

__all__ = [
    "HarvestSettings",
    "HarvesterConfig",
    "JsonConfigStore",
    "ContainerHandle",
    "HarvestState",
    "ItemStack",
    "Position",
    "Script",
    "TransferMode",
    "AliasResolver",
    "PositionStore",
    "HarvestCycle",
    "STORAGE_FULL_THRESHOLD",
    "ScriptScheduler",
    "CommandDispatcher",
    "UsageError",
    "ConsoleSession",
]
