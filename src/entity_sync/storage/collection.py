"""Document collection backends.

``DocumentCollection`` is the protocol.  Two implementations ship:

* pymongo's ``AsyncCollection`` -- satisfies the protocol as-is.
* ``MemoryCollection`` -- for unit tests and dry runs.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any, Protocol, runtime_checkable

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class DocumentCollection(Protocol):
    """The subset of a document-store collection the engine relies on."""

    @property
    def name(self) -> str: ...

    async def insert_one(self, document: dict[str, Any]) -> Any: ...

    async def replace_one(
        self, filter: Mapping[str, Any], replacement: dict[str, Any],
    ) -> Any: ...

    async def delete_one(self, filter: Mapping[str, Any]) -> Any: ...

    def find(self, filter: Mapping[str, Any] | None = None) -> Any:
        """Return an async iterable over matching documents."""
        ...

    async def find_one(self, filter: Mapping[str, Any] | None = None) -> dict[str, Any] | None: ...

    async def count_documents(self, filter: Mapping[str, Any]) -> int: ...

    async def delete_many(self, filter: Mapping[str, Any]) -> Any: ...


# ---------------------------------------------------------------------------
# MemoryCollection  (tests)
# ---------------------------------------------------------------------------


def _matches(document: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    if not filter:
        return True
    return all(
        field in document and document[field] == value
        for field, value in filter.items()
    )


class MemoryCursor:
    """Async iterator over a snapshot of documents."""

    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents
        self._index = 0

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self._index >= len(self._documents):
            raise StopAsyncIteration
        document = self._documents[self._index]
        self._index += 1
        return document

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        remaining = self._documents[self._index:]
        if length is not None:
            remaining = remaining[:length]
        self._index += len(remaining)
        return remaining


class MemoryCollection:
    """In-memory collection -- no persistence, no server.

    Documents are deep-copied on the way in and out, kept in insertion
    order (the natural cursor order), and keyed by ``_id``.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._documents: dict[Any, dict[str, Any]] = {}

    @property
    def name(self) -> str:
        return self._name

    # -- writes -------------------------------------------------------------

    async def insert_one(self, document: dict[str, Any]) -> Any:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        key = stored["_id"]
        if key in self._documents:
            raise DuplicateKeyError(
                f"E11000 duplicate key error collection: {self._name} _id: {key!r}"
            )
        self._documents[key] = stored
        return key

    async def replace_one(
        self, filter: Mapping[str, Any], replacement: dict[str, Any],
    ) -> int:
        for key, document in self._documents.items():
            if _matches(document, filter):
                stored = copy.deepcopy(replacement)
                stored["_id"] = key
                self._documents[key] = stored
                return 1
        return 0

    async def delete_one(self, filter: Mapping[str, Any]) -> int:
        for key, document in self._documents.items():
            if _matches(document, filter):
                del self._documents[key]
                return 1
        return 0

    async def delete_many(self, filter: Mapping[str, Any]) -> int:
        doomed = [k for k, d in self._documents.items() if _matches(d, filter)]
        for key in doomed:
            del self._documents[key]
        return len(doomed)

    # -- reads --------------------------------------------------------------

    def find(self, filter: Mapping[str, Any] | None = None) -> MemoryCursor:
        return MemoryCursor([
            copy.deepcopy(d) for d in self._documents.values() if _matches(d, filter)
        ])

    async def find_one(self, filter: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        for document in self._documents.values():
            if _matches(document, filter):
                return copy.deepcopy(document)
        return None

    async def count_documents(self, filter: Mapping[str, Any]) -> int:
        return sum(1 for d in self._documents.values() if _matches(d, filter))

    # -- helpers for tests --------------------------------------------------

    @property
    def documents(self) -> list[dict[str, Any]]:
        """Copies of stored documents in natural order (for assertions)."""
        return [copy.deepcopy(d) for d in self._documents.values()]


class MemoryDatabase:
    """Name -> :class:`MemoryCollection`, created on first access."""

    def __init__(self, name: str = "memory") -> None:
        self.name = name
        self._collections: dict[str, MemoryCollection] = {}

    def get_collection(self, name: str) -> MemoryCollection:
        if name not in self._collections:
            self._collections[name] = MemoryCollection(name)
        return self._collections[name]

    __getitem__ = get_collection

    def list_collection_names(self) -> list[str]:
        return list(self._collections)
