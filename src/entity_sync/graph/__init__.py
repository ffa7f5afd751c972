"""In-memory entity runtime.

Public API
----------
::

    from entity_sync.graph import (
        EntityModel,
        EntityRegistry,
        InMemoryRepository,
        ToOneEntity,
        ToManyEntities,
        OneToOneRelationship,
        EntitySerializer,
    )
"""

from __future__ import annotations

from entity_sync.graph.pointers import EntityPointer, ToManyEntities, ToOneEntity
from entity_sync.graph.relationships import (
    ManyToManyRelationship,
    OneToManyRelationship,
    OneToOneRelationship,
)
from entity_sync.graph.repository import (
    Entity,
    EntityEventsListener,
    EntityModel,
    EntityRegistry,
    InMemoryRepository,
    model_fields_of,
)
from entity_sync.graph.serializer import EntitySerializer

__all__ = [
    # Runtime
    "Entity",
    "EntityEventsListener",
    "EntityModel",
    "EntityRegistry",
    "InMemoryRepository",
    "model_fields_of",
    # Pointers
    "EntityPointer",
    "ToOneEntity",
    "ToManyEntities",
    # Relationships
    "OneToOneRelationship",
    "OneToManyRelationship",
    "ManyToManyRelationship",
    # Codec
    "EntitySerializer",
]
