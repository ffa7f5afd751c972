"""Repository listener that mirrors entity lifecycle into a collection.

Everything a task needs is captured inside the event handler: the full
document for creates and updates, only the primary key for deletes.
Each event therefore yields its own frozen payload and the queue replays
every intermediate state; updates are never coalesced.
"""

from __future__ import annotations

import logging

from entity_sync.core.enums import EntityEvent
from entity_sync.graph.repository import Entity
from entity_sync.graph.serializer import EntitySerializer
from entity_sync.storage.collection import DocumentCollection

from .events import (
    EntityCreated,
    EntityDeleted,
    EntityUpdated,
    LifecycleEvent,
    lifecycle_event,
)
from .mapper import DocumentMapper
from .queue import TaskQueue
from .tasks import Task

logger = logging.getLogger(__name__)


class PersistenceLayer:
    """Snapshot entities of one repository and enqueue store writes.

    Parameters
    ----------
    collection:
        Target collection for this repository's documents.
    serializer:
        Codec for the repository's entity model.
    queue:
        The shared :class:`TaskQueue`.
    mapper:
        Key convention; defaults to ``ObjectId`` keys under ``_id``.
    """

    def __init__(
        self,
        collection: DocumentCollection,
        serializer: EntitySerializer,
        queue: TaskQueue,
        *,
        mapper: DocumentMapper | None = None,
    ) -> None:
        self.collection = collection
        self.serializer = serializer
        self.queue = queue
        self.mapper = mapper if mapper is not None else DocumentMapper()

    def notify_entity_event(self, entity: Entity, event: EntityEvent) -> None:
        self.handle(lifecycle_event(entity, event))

    def handle(self, event: LifecycleEvent) -> None:
        match event:
            case EntityCreated(entity=entity):
                self._entity_created(entity)
            case EntityUpdated(entity=entity):
                self._entity_updated(entity)
            case EntityDeleted(entity=entity):
                self._entity_deleted(entity)
            case _:
                raise TypeError(f"Unhandled lifecycle event: {event!r}")

    # -- handlers -----------------------------------------------------------

    def _entity_to_document(self, entity: Entity) -> dict:
        return self.mapper.to_document(self.serializer.serialize(entity))

    def _entity_created(self, entity: Entity) -> None:
        document = self._entity_to_document(entity)
        key = document[self.mapper.key_field]
        self.queue.push(
            Task.insert(self.collection, key, document, key_field=self.mapper.key_field)
        )
        logger.debug("Queued insert %s:%s", self.collection.name, entity.id)

    def _entity_updated(self, entity: Entity) -> None:
        document = self._entity_to_document(entity)
        key = self.mapper.primary_key_of(entity)
        self.queue.push(
            Task.replace(self.collection, key, document, key_field=self.mapper.key_field)
        )
        logger.debug("Queued replace %s:%s", self.collection.name, entity.id)

    def _entity_deleted(self, entity: Entity) -> None:
        key = self.mapper.primary_key_of(entity)
        self.queue.push(
            Task.delete(self.collection, key, key_field=self.mapper.key_field)
        )
        logger.debug("Queued delete %s:%s", self.collection.name, entity.id)
