"""Stateless translation between entity snapshots and store documents.

A document is the serialized snapshot with the entity id moved into the
store's primary-key field.  Relationship fields arrive already reduced to
raw ids by the serializer and pass through untouched.

Nothing here validates: a malformed document surfaces only when the
entity serializer sees the inverse shape.
"""

from __future__ import annotations

from typing import Any

from bson import ObjectId

from entity_sync.core.enums import KeyMode


class DocumentMapper:
    """Translate ``snapshot <-> document`` for one key convention.

    Args:
        key_mode: ``OBJECT_ID`` stores ``ObjectId(id)``; ``STRING`` stores
            the raw id.
        id_field: Snapshot field holding the entity id.
        key_field: Document field holding the primary key.
    """

    def __init__(
        self,
        key_mode: KeyMode = KeyMode.OBJECT_ID,
        *,
        id_field: str = "id",
        key_field: str = "_id",
    ) -> None:
        self.key_mode = key_mode
        self.id_field = id_field
        self.key_field = key_field

    def primary_key(self, entity_id: str) -> Any:
        """Derive the store key from an entity id alone."""
        if self.key_mode is KeyMode.OBJECT_ID:
            return ObjectId(entity_id)
        return entity_id

    def primary_key_of(self, entity: Any) -> Any:
        return self.primary_key(entity.id)

    def to_document(self, snapshot: dict[str, Any]) -> dict[str, Any]:
        document = dict(snapshot)
        entity_id = document.pop(self.id_field)
        document[self.key_field] = self.primary_key(entity_id)
        return document

    def document_to_snapshot(self, document: dict[str, Any]) -> dict[str, Any]:
        snapshot = dict(document)
        key = snapshot.pop(self.key_field)
        snapshot[self.id_field] = str(key)
        return snapshot
