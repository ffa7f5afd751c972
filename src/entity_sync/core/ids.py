"""Id and timestamp factories.

Entity ids are ObjectId hex strings so they convert losslessly to the
store's native key type.  Internal ids (task ids) are UUID v4 strings.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from bson import ObjectId


def new_id() -> str:
    """Generate a new UUID v4 string."""
    return str(uuid.uuid4())


def new_entity_id() -> str:
    """Generate a fresh ObjectId hex string for an entity."""
    return str(ObjectId())


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)
