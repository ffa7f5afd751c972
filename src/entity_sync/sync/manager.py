"""SyncManager facade.

Owns the shared :class:`TaskQueue` and the key convention, hydrates
repositories at startup and attaches one persistence layer per
(repository, collection) pair.

Usage::

    from entity_sync.sync.manager import SyncManager

    mgr = SyncManager.from_settings(load_settings("sync.toml"))

    await mgr.load(people, "people", PersonSerializer)
    mgr.attach(people, "people", PersonSerializer)

    people.create_entity(name="giorgio")
    await mgr.join()

    await mgr.close()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from entity_sync.core.config import Settings
from entity_sync.graph.repository import InMemoryRepository
from entity_sync.graph.serializer import EntitySerializer

from .filler import RepositoryFiller
from .mapper import DocumentMapper
from .persistence import PersistenceLayer
from .queue import TaskQueue
from .tasks import Task

logger = logging.getLogger(__name__)


class SyncManager:
    """Single entry point for loading and mirroring repositories.

    Parameters
    ----------
    database:
        Anything that returns a collection for ``database[name]``
        (pymongo ``AsyncDatabase`` or :class:`MemoryDatabase`).
    queue:
        Shared task queue.  A default ``HALT`` queue is created if omitted.
    mapper:
        Key convention used by every layer and filler.
    client:
        Optional client closed by :meth:`close`.
    """

    def __init__(
        self,
        database: Any,
        *,
        queue: TaskQueue | None = None,
        mapper: DocumentMapper | None = None,
        client: Any | None = None,
    ) -> None:
        self._database = database
        self._queue = queue if queue is not None else TaskQueue()
        self._mapper = mapper if mapper is not None else DocumentMapper()
        self._client = client
        self._layers: dict[str, tuple[InMemoryRepository, PersistenceLayer]] = {}

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        database: Any | None = None,
        on_task_error: Callable[[Task, Exception], None] | None = None,
        setup_observability: bool = False,
    ) -> SyncManager:
        """Build a fully wired SyncManager from configuration.

        When *database* is ``None`` a pymongo client is created from
        ``settings.mongo`` and owned by the manager.  With
        *setup_observability* the process-wide logging is configured and,
        if enabled, the metrics endpoint is started.
        """
        if setup_observability:
            from entity_sync.observability.logger import setup_logging
            from entity_sync.observability.metrics import start_metrics_server

            obs = settings.observability
            setup_logging(level=obs.log_level, format=obs.log_format)
            if obs.metrics_enabled:
                start_metrics_server(obs.metrics_port)

        client = None
        if database is None:
            from entity_sync.storage.mongo import client_from_config

            client = client_from_config(settings.mongo)
            database = client[settings.mongo.database]

        queue = TaskQueue(
            failure_policy=settings.queue.failure_policy,
            on_task_error=on_task_error,
            name=settings.queue.name,
        )
        mapper = DocumentMapper(
            settings.mapping.key_mode,
            id_field=settings.mapping.id_field,
            key_field=settings.mapping.key_field,
        )
        return cls(database, queue=queue, mapper=mapper, client=client)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    async def load(
        self,
        repository: InMemoryRepository,
        collection_name: str,
        serializer: EntitySerializer,
    ) -> int:
        """Hydrate *repository* from *collection_name*.  Call before :meth:`attach`."""
        if repository.name in self._layers:
            logger.warning(
                "Loading %s while a persistence layer is attached", repository.name,
            )
        filler = RepositoryFiller(
            serializer, self._database[collection_name], mapper=self._mapper,
        )
        return await filler.fill_repository(repository)

    def attach(
        self,
        repository: InMemoryRepository,
        collection_name: str,
        serializer: EntitySerializer,
    ) -> PersistenceLayer:
        """Mirror *repository* into *collection_name* through the shared queue."""
        if repository.name in self._layers:
            raise ValueError(f"Repository {repository.name!r} is already attached")
        layer = PersistenceLayer(
            self._database[collection_name],
            serializer,
            self._queue,
            mapper=self._mapper,
        )
        repository.register_listener(layer)
        self._layers[repository.name] = (repository, layer)
        logger.info("Attached %s -> %s", repository.name, collection_name)
        return layer

    def detach(self, repository: InMemoryRepository) -> None:
        entry = self._layers.pop(repository.name, None)
        if entry is None:
            return
        attached, layer = entry
        attached.unregister_listener(layer)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def join(self) -> None:
        """Wait for every queued write to land."""
        await self._queue.join()

    async def close(self, *, drain: bool = True) -> None:
        """Detach all layers, stop the queue and close an owned client.

        With *drain* (the default) queued writes are flushed first.  A
        halt met while draining is raised after cleanup.  Without it,
        unwritten tasks stay on the stopped queue.
        """
        for repository, layer in list(self._layers.values()):
            repository.unregister_listener(layer)
        self._layers.clear()
        try:
            if drain and not self._queue.halted:
                await self._queue.join()
        finally:
            await self._queue.stop()
            if self._client is not None:
                await self._client.close()
                self._client = None
            if self._queue.pending:
                logger.warning(
                    "Closed with %d unwritten task(s) on queue %s",
                    self._queue.pending, self._queue.name,
                )

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    @property
    def mapper(self) -> DocumentMapper:
        return self._mapper

    @property
    def attached(self) -> list[str]:
        return list(self._layers)

    def get_metrics(self) -> dict[str, Any]:
        return {"queue": self._queue.get_metrics(), "attached": self.attached}
