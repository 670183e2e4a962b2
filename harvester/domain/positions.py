"""Source and storage positions, persisted on every change."""

from typing import Protocol

from harvester.domain.models import Position


class _ConfigStore(Protocol):
    def save(self, config) -> bool:
        ...


class PositionStore:
    """Owns ``source_position`` and ``storage_position``.

    Reads always go through the live config object, so a running harvest
    cycle picks up a reconfiguration on its next step.
    """

    def __init__(self, config, store: _ConfigStore):
        self._config = config
        self._store = store

    @property
    def source_position(self) -> Position:
        return self._config.harvest.source_position

    @property
    def storage_position(self) -> Position:
        return self._config.harvest.storage_position

    def set_source(self, position: Position) -> bool:
        """Update the source position. Returns False if persisting failed."""
        self._config.harvest.source_position = position
        return self._store.save(self._config)

    def set_storage(self, position: Position) -> bool:
        """Update the storage position. Returns False if persisting failed."""
        self._config.harvest.storage_position = position
        return self._store.save(self._config)
