"""Deferred persistence operations.

A :class:`Task` is bound when the lifecycle event fires: it carries the
target collection, the resolved primary key and, for inserts and
replacements, the already-built document.  Running it later only talks
to the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, assert_never

from entity_sync.core.enums import TaskKind
from entity_sync.core.ids import new_id, utc_now
from entity_sync.storage.collection import DocumentCollection


@dataclass(frozen=True, eq=False)
class Task:
    kind: TaskKind
    collection: DocumentCollection
    key: Any
    document: dict[str, Any] | None = None
    key_field: str = "_id"
    task_id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def insert(
        cls, collection: DocumentCollection, key: Any, document: dict[str, Any],
        *, key_field: str = "_id",
    ) -> Task:
        return cls(TaskKind.INSERT, collection, key, document, key_field)

    @classmethod
    def replace(
        cls, collection: DocumentCollection, key: Any, document: dict[str, Any],
        *, key_field: str = "_id",
    ) -> Task:
        return cls(TaskKind.REPLACE, collection, key, document, key_field)

    @classmethod
    def delete(
        cls, collection: DocumentCollection, key: Any, *, key_field: str = "_id",
    ) -> Task:
        return cls(TaskKind.DELETE, collection, key, None, key_field)

    @property
    def collection_name(self) -> str:
        return getattr(self.collection, "name", type(self.collection).__name__)

    async def run(self) -> None:
        """Apply the operation to the store.  Store errors propagate."""
        match self.kind:
            case TaskKind.INSERT:
                await self.collection.insert_one(self.document)
            case TaskKind.REPLACE:
                await self.collection.replace_one({self.key_field: self.key}, self.document)
            case TaskKind.DELETE:
                await self.collection.delete_one({self.key_field: self.key})
            case _:
                assert_never(self.kind)

    def __repr__(self) -> str:
        return f"Task({self.kind.value} {self.collection_name}:{self.key})"
