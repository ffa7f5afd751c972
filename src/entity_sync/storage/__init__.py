"""Document store backends."""

from entity_sync.storage.collection import (
    DocumentCollection,
    MemoryCollection,
    MemoryCursor,
    MemoryDatabase,
)

__all__ = [
    "DocumentCollection",
    "MemoryCollection",
    "MemoryCursor",
    "MemoryDatabase",
]
