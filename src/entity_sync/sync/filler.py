"""One-shot hydration of an empty repository from a collection.

Run it before any persistence layer is attached and before mutation
traffic starts.  The fill is all-or-nothing: every document is streamed
and deserialized first, and entities are registered only once the cursor
is exhausted.  A document that fails validation aborts the fill and
leaves the repository empty.
"""

from __future__ import annotations

import logging
from typing import Generic

from entity_sync.core.errors import FillError
from entity_sync.graph.repository import InMemoryRepository, M
from entity_sync.graph.serializer import EntitySerializer
from entity_sync.observability import metrics
from entity_sync.storage.collection import DocumentCollection

from .mapper import DocumentMapper

logger = logging.getLogger(__name__)


class RepositoryFiller(Generic[M]):
    def __init__(
        self,
        serializer: EntitySerializer[M],
        collection: DocumentCollection,
        *,
        mapper: DocumentMapper | None = None,
    ) -> None:
        self.serializer = serializer
        self.collection = collection
        self.mapper = mapper if mapper is not None else DocumentMapper()

    async def fill_repository(self, repository: InMemoryRepository[M]) -> int:
        """Load every document of the collection into *repository*.

        Entities keep their stored ids.  No lifecycle events fire.

        Returns:
            The number of entities loaded.

        Raises:
            FillError: if *repository* already holds entities.
            DeserializationError: if any document does not match the model.
        """
        if len(repository):
            raise FillError(
                f"Repository {repository.name!r} is not empty ({len(repository)} entities)"
            )

        staged: list[M] = []
        async for document in self.collection.find({}):
            snapshot = self.mapper.document_to_snapshot(document)
            staged.append(self.serializer.deserialize(snapshot))

        for data in staged:
            repository.add_entity(data, notify=False)

        metrics.record_documents_loaded(self.collection.name, len(staged))
        logger.info(
            "Filled repository %s with %d entities from %s",
            repository.name, len(staged), self.collection.name,
        )
        return len(staged)
