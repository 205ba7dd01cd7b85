from __future__ import annotations

from app.core.config import settings


class CollectionNames:
    """Names of the MongoDB collections used by the service."""

    CACHED_URLS: str = settings.cache_collection
