"""In-memory entity runtime: models, entities, repositories, listeners.

Repositories own their entities.  Every mutation goes through the
repository, which notifies registered listeners synchronously and in
registration order:

* ``CREATED`` after the entity is registered,
* ``POST_UPDATE`` after the new state is in place,
* ``PRE_DELETE`` while the entity is still registered, before removal.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict

from entity_sync.core.enums import EntityEvent
from entity_sync.core.errors import (
    DuplicateEntityError,
    EntityError,
    EntityNotFoundError,
)
from entity_sync.core.ids import new_entity_id

from .pointers import EntityPointer

logger = logging.getLogger(__name__)


class EntityModel(BaseModel):
    """Base model for entity data.  Subclasses add scalar and pointer fields."""

    model_config = ConfigDict(extra="ignore")

    id: str


M = TypeVar("M", bound=EntityModel)


def model_fields_of(data: BaseModel) -> dict[str, Any]:
    """Field values of *data* as live objects (pointers are not serialized)."""
    return {name: getattr(data, name) for name in type(data).model_fields}


@runtime_checkable
class EntityEventsListener(Protocol):
    """Receives lifecycle notifications from a repository."""

    def notify_entity_event(self, entity: Entity, event: EntityEvent) -> None: ...


# ---------------------------------------------------------------------------
# Entity
# ---------------------------------------------------------------------------


class Entity(Generic[M]):
    """Identity wrapper around one entity's current data."""

    __slots__ = ("_repository", "_data")

    def __init__(self, repository: InMemoryRepository[M], data: M) -> None:
        self._repository = repository
        self._data = data

    @property
    def id(self) -> str:
        return self._data.id

    @property
    def data(self) -> M:
        return self._data

    @property
    def repository(self) -> InMemoryRepository[M]:
        return self._repository

    def update(self, **changes: Any) -> None:
        """Validate and apply scalar changes, then fire ``POST_UPDATE``."""
        self._repository.update_entity(self, **changes)

    def touch(self) -> None:
        """Fire ``POST_UPDATE`` after an in-place pointer mutation."""
        self._repository.notify(self, EntityEvent.POST_UPDATE)

    def delete(self) -> None:
        self._repository.delete_entity(self.id)

    def __repr__(self) -> str:
        return f"Entity({self._repository.name}:{self.id})"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class EntityRegistry:
    """Name -> repository map that pointers resolve against."""

    def __init__(self) -> None:
        self._repositories: dict[str, InMemoryRepository] = {}

    def create_repository(
        self,
        name: str,
        model: type[M],
        *,
        id_generator: Callable[[], str] = new_entity_id,
    ) -> InMemoryRepository[M]:
        return InMemoryRepository(name, model, registry=self, id_generator=id_generator)

    def register(self, repository: InMemoryRepository) -> None:
        if repository.name in self._repositories:
            raise EntityError(f"Repository {repository.name!r} already registered")
        self._repositories[repository.name] = repository

    def get(self, name: str) -> InMemoryRepository | None:
        return self._repositories.get(name)

    def __getitem__(self, name: str) -> InMemoryRepository:
        return self._repositories[name]

    def __contains__(self, name: object) -> bool:
        return name in self._repositories

    @property
    def names(self) -> list[str]:
        return list(self._repositories)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class InMemoryRepository(Generic[M]):
    """Entities of one model type, keyed by id.

    Args:
        name: Repository name; pointer subclasses use it as ``target``.
        model: The :class:`EntityModel` subclass stored here.
        registry: Registry to join.  A private one is created if omitted.
        id_generator: Produces ids for :meth:`create_entity`.
    """

    def __init__(
        self,
        name: str,
        model: type[M],
        *,
        registry: EntityRegistry | None = None,
        id_generator: Callable[[], str] = new_entity_id,
    ) -> None:
        self._name = name
        self._model = model
        self._registry = registry if registry is not None else EntityRegistry()
        self._id_generator = id_generator
        self._entities: dict[str, Entity[M]] = {}
        self._listeners: list[EntityEventsListener] = []
        self._registry.register(self)

    @property
    def name(self) -> str:
        return self._name

    @property
    def model(self) -> type[M]:
        return self._model

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    @property
    def id_generator(self) -> Callable[[], str]:
        return self._id_generator

    # -- listeners ----------------------------------------------------------

    def register_listener(self, listener: EntityEventsListener) -> None:
        self._listeners.append(listener)

    def unregister_listener(self, listener: EntityEventsListener) -> None:
        self._listeners.remove(listener)

    @property
    def listeners(self) -> list[EntityEventsListener]:
        return list(self._listeners)

    def notify(self, entity: Entity[M], event: EntityEvent) -> None:
        for listener in list(self._listeners):
            listener.notify_entity_event(entity, event)

    # -- creation -----------------------------------------------------------

    def create_entity(self, **fields: Any) -> Entity[M]:
        """Create an entity under a freshly generated id."""
        return self._insert(self._id_generator(), fields, notify=True)

    def create_entity_with_id(
        self, entity_id: str, *, notify: bool = True, **fields: Any,
    ) -> Entity[M]:
        """Create an entity under an externally supplied id.

        Raises:
            DuplicateEntityError: if *entity_id* is already registered.
        """
        return self._insert(entity_id, fields, notify=notify)

    def add_entity(self, data: M, *, notify: bool = True) -> Entity[M]:
        """Register already validated *data* under its own ``id``.

        Raises:
            DuplicateEntityError: if the id is already registered.
            EntityError: if *data* is not an instance of this repository's model.
        """
        if not isinstance(data, self._model):
            raise EntityError(
                f"{self._name}: expected {self._model.__name__}, got {type(data).__name__}"
            )
        if data.id in self._entities:
            raise DuplicateEntityError(
                f"{self._name}: entity {data.id!r} already exists"
            )
        return self._register(data, notify=notify)

    def _insert(self, entity_id: str, fields: dict[str, Any], *, notify: bool) -> Entity[M]:
        if entity_id in self._entities:
            raise DuplicateEntityError(
                f"{self._name}: entity {entity_id!r} already exists"
            )
        data = self._model.model_validate({**fields, "id": entity_id})
        return self._register(data, notify=notify)

    def _register(self, data: M, *, notify: bool) -> Entity[M]:
        self._bind_pointers(data)
        entity = Entity(self, data)
        self._entities[data.id] = entity
        if notify:
            self.notify(entity, EntityEvent.CREATED)
        return entity

    def _bind_pointers(self, data: M) -> None:
        for value in model_fields_of(data).values():
            if isinstance(value, EntityPointer):
                value.bind(self._registry)

    # -- mutation -----------------------------------------------------------

    def update_entity(self, entity: Entity[M], **changes: Any) -> None:
        if "id" in changes and changes["id"] != entity.id:
            raise EntityError("Entity id cannot be changed")
        self._require(entity.id)
        data = self._model.model_validate({**model_fields_of(entity.data), **changes})
        self._bind_pointers(data)
        entity._data = data
        self.notify(entity, EntityEvent.POST_UPDATE)

    def delete_entity(self, entity_id: str) -> None:
        entity = self._require(entity_id)
        self.notify(entity, EntityEvent.PRE_DELETE)
        del self._entities[entity_id]

    def _require(self, entity_id: str) -> Entity[M]:
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(f"{self._name}: no entity {entity_id!r}")
        return entity

    # -- queries ------------------------------------------------------------

    def get_entity_by_id(self, entity_id: str) -> Entity[M] | None:
        return self._entities.get(entity_id)

    def get_all_entities(self) -> list[Entity[M]]:
        return list(self._entities.values())

    def clear(self) -> None:
        """Forget every entity without firing events."""
        self._entities.clear()

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities
