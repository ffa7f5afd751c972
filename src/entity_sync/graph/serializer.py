"""Entity <-> raw shape codec backed by the entity's pydantic model."""

from __future__ import annotations

from typing import Any, Generic

from pydantic import ValidationError

from entity_sync.core.errors import DeserializationError

from .repository import Entity, M


class EntitySerializer(Generic[M]):
    """Serialize entities to plain dicts and validate raw shapes back.

    Pointer fields serialize to their raw ids, so the output contains no
    nested entity structure.
    """

    def __init__(self, model: type[M]) -> None:
        self._model = model

    @property
    def model(self) -> type[M]:
        return self._model

    def serialize(self, entity: Entity[M]) -> dict[str, Any]:
        return entity.data.model_dump(mode="python")

    def deserialize(self, raw: Any) -> M:
        try:
            return self._model.model_validate(raw)
        except ValidationError as exc:
            raise DeserializationError(
                self._model.__name__, exc.errors(include_url=False),
            ) from exc
