"""Tagged registry of workspace entities.

Every qubit, grid cell and footprint lives here under a registry-assigned id
and an ``EntityKind`` tag. Cleanup code asks for entities by tag instead of
inspecting types at runtime.
"""

from __future__ import annotations

import itertools
import logging
from typing import Union

from .errors import UnknownEntityError
from .types import EntityKind, Footprint, GridCell, Qubit

logger = logging.getLogger(__name__)

Entity = Union[Qubit, GridCell, Footprint]


class EntityRegistry:
    def __init__(self) -> None:
        self._entries: dict[str, tuple[EntityKind, Entity]] = {}
        self._counter = itertools.count(1)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def add(self, kind: EntityKind, entity: Entity) -> str:
        """Register ``entity`` under a fresh id and write it back to ``entity.id``."""
        entity_id = f"{kind.value}-{next(self._counter)}"
        entity.id = entity_id
        self._entries[entity_id] = (kind, entity)
        return entity_id

    def get(self, entity_id: str) -> Entity:
        try:
            return self._entries[entity_id][1]
        except KeyError:
            raise UnknownEntityError(entity_id) from None

    def kind_of(self, entity_id: str) -> EntityKind:
        try:
            return self._entries[entity_id][0]
        except KeyError:
            raise UnknownEntityError(entity_id) from None

    def of_kind(self, kind: EntityKind) -> list[Entity]:
        """All entities with the given tag, in registration order."""
        return [e for k, e in self._entries.values() if k is kind]

    def remove(self, entity_id: str) -> Entity:
        try:
            _, entity = self._entries.pop(entity_id)
        except KeyError:
            raise UnknownEntityError(entity_id) from None
        logger.debug("Unregistered %s", entity_id)
        return entity

    def clear(self, kind: EntityKind | None = None) -> None:
        if kind is None:
            self._entries.clear()
            return
        for entity_id in [i for i, (k, _) in self._entries.items() if k is kind]:
            del self._entries[entity_id]
