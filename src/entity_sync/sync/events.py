"""Tagged lifecycle variants handled by the persistence layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from entity_sync.core.enums import EntityEvent
from entity_sync.graph.repository import Entity


@dataclass(frozen=True)
class EntityCreated:
    entity: Entity


@dataclass(frozen=True)
class EntityUpdated:
    entity: Entity


@dataclass(frozen=True)
class EntityDeleted:
    entity: Entity


LifecycleEvent = Union[EntityCreated, EntityUpdated, EntityDeleted]

_KIND_MAP: dict[EntityEvent, type[LifecycleEvent]] = {
    EntityEvent.CREATED: EntityCreated,
    EntityEvent.POST_UPDATE: EntityUpdated,
    EntityEvent.PRE_DELETE: EntityDeleted,
}


def lifecycle_event(entity: Entity, kind: EntityEvent) -> LifecycleEvent:
    """Wrap a repository notification in its variant type."""
    try:
        variant = _KIND_MAP[kind]
    except KeyError:
        raise ValueError(f"Unknown entity event: {kind!r}") from None
    return variant(entity)
