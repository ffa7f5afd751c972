"""Write-behind synchronization engine.

Public API
----------
::

    from entity_sync.sync import (
        DocumentMapper,
        PersistenceLayer,
        RepositoryFiller,
        SyncManager,
        Task,
        TaskQueue,
    )
"""

from __future__ import annotations

from entity_sync.sync.events import (
    EntityCreated,
    EntityDeleted,
    EntityUpdated,
    LifecycleEvent,
    lifecycle_event,
)
from entity_sync.sync.filler import RepositoryFiller
from entity_sync.sync.manager import SyncManager
from entity_sync.sync.mapper import DocumentMapper
from entity_sync.sync.persistence import PersistenceLayer
from entity_sync.sync.queue import DeadLetter, TaskQueue
from entity_sync.sync.tasks import Task

__all__ = [
    # Engine
    "TaskQueue",
    "Task",
    "DeadLetter",
    "PersistenceLayer",
    "RepositoryFiller",
    "SyncManager",
    # Translation
    "DocumentMapper",
    # Lifecycle variants
    "EntityCreated",
    "EntityUpdated",
    "EntityDeleted",
    "LifecycleEvent",
    "lifecycle_event",
]
