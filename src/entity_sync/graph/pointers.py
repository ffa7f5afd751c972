"""Relationship pointers.

A pointer never holds another entity.  It stores raw ids plus a handle to
the :class:`~entity_sync.graph.repository.EntityRegistry` that owns the
target repository, and resolves lazily on every access.  Entities can
therefore be loaded in any order and pointers stay valid across reloads.

Subclass a pointer once per target and name the target repository::

    class OnePerson(ToOneEntity):
        target = "people"

    class ManyTrips(ToManyEntities):
        target = "trips"

Pointers validate from the raw store shape (``None | str`` for to-one,
a sequence of ``str`` for to-many) and serialize back to it, so a
pydantic model that declares pointer fields is also its own codec.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

if TYPE_CHECKING:
    from .repository import Entity, EntityRegistry, InMemoryRepository


class EntityPointer:
    """Common registry binding for to-one and to-many pointers."""

    target: ClassVar[str] = ""

    def __init__(self) -> None:
        self._registry: EntityRegistry | None = None

    def bind(self, registry: EntityRegistry) -> None:
        """Attach the registry used for lookups.  First binding wins."""
        if self._registry is None:
            self._registry = registry

    @property
    def is_bound(self) -> bool:
        return self._registry is not None

    def _repository(self) -> InMemoryRepository | None:
        if self._registry is None:
            return None
        return self._registry.get(self.target)

    def _lookup(self, entity_id: str) -> Entity | None:
        repository = self._repository()
        if repository is None:
            return None
        return repository.get_entity_by_id(entity_id)

    # -- pydantic integration ----------------------------------------------

    @classmethod
    def _validate(cls, value: Any) -> EntityPointer:
        raise NotImplementedError

    def _serialize(self) -> Any:
        raise NotImplementedError

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler,
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda pointer: pointer._serialize(),
            ),
        )


class ToOneEntity(EntityPointer):
    """Nullable pointer to a single entity."""

    def __init__(self, entity_id: str | None = None) -> None:
        super().__init__()
        self._id = entity_id

    def get_id(self) -> str | None:
        return self._id

    def set_id(self, entity_id: str | None) -> None:
        self._id = entity_id

    def get_entity(self) -> Entity | None:
        if self._id is None:
            return None
        return self._lookup(self._id)

    @classmethod
    def _validate(cls, value: Any) -> ToOneEntity:
        if isinstance(value, cls):
            return value
        if value is None:
            return cls()
        if isinstance(value, str):
            return cls(value)
        raise ValueError(
            f"{cls.__name__} expects an entity id or null, got {type(value).__name__}"
        )

    def _serialize(self) -> str | None:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToOneEntity):
            return NotImplemented
        return self.target == other.target and self._id == other._id

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._id!r})"


class ToManyEntities(EntityPointer):
    """Insertion-ordered set of pointers to entities of one type."""

    def __init__(self, ids: Iterable[str] = ()) -> None:
        super().__init__()
        self._ids: list[str] = list(dict.fromkeys(ids))

    def get_all_ids(self) -> list[str]:
        return list(self._ids)

    def get_all_entities(self) -> list[Entity | None]:
        """Resolve every id; ids with no registered entity yield ``None``."""
        return [self._lookup(entity_id) for entity_id in self._ids]

    def add(self, entity_id: str) -> bool:
        """Append *entity_id*.  Returns ``False`` if it was already present."""
        if entity_id in self._ids:
            return False
        self._ids.append(entity_id)
        return True

    def remove(self, entity_id: str) -> bool:
        """Drop *entity_id*.  Returns ``False`` if it was not present."""
        if entity_id not in self._ids:
            return False
        self._ids.remove(entity_id)
        return True

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    @classmethod
    def _validate(cls, value: Any) -> ToManyEntities:
        if isinstance(value, cls):
            return value
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return cls(value)
        raise ValueError(f"{cls.__name__} expects a list of entity ids")

    def _serialize(self) -> list[str]:
        return list(self._ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ToManyEntities):
            return NotImplemented
        return self.target == other.target and self._ids == other._ids

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._ids!r})"
