"""MongoDB client factory.

Builds pymongo's ``AsyncMongoClient`` from explicit arguments or from a
:class:`MongoConfig`.  The caller owns the returned client and closes it.
"""

from __future__ import annotations

import logging
from typing import Any

from pymongo import AsyncMongoClient

from entity_sync.core.config import MongoConfig

logger = logging.getLogger(__name__)


def create_client(
    url: str,
    *,
    app_name: str = "entity-sync",
    server_selection_timeout_ms: int = 5000,
    max_pool_size: int = 10,
    **kwargs: Any,
) -> AsyncMongoClient:
    """Create and return a new :class:`AsyncMongoClient`.

    Args:
        url: MongoDB connection string (``mongodb://`` or ``mongodb+srv://``).
        app_name: Reported to the server for connection attribution.
        server_selection_timeout_ms: How long operations wait for a
            reachable server before failing.
        max_pool_size: Upper bound on pooled connections.
    """
    client: AsyncMongoClient = AsyncMongoClient(
        url,
        appname=app_name,
        serverSelectionTimeoutMS=server_selection_timeout_ms,
        maxPoolSize=max_pool_size,
        **kwargs,
    )
    logger.info("Created mongo client for %s (max_pool_size=%s)", url.split("@")[-1], max_pool_size)
    return client


def client_from_config(config: MongoConfig) -> AsyncMongoClient:
    return create_client(
        config.url,
        app_name=config.app_name,
        server_selection_timeout_ms=config.server_selection_timeout_ms,
        max_pool_size=config.max_pool_size,
    )
