from __future__ import annotations

import logging

from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.collections import CollectionNames
from app.models.cache.record import CacheRecord
from app.repositories.base import BaseRepository, RepositoryError

logger = logging.getLogger(__name__)


class CacheRepository(BaseRepository):
    """MongoDB repository holding one ``CacheRecord`` per URL."""

    COLLECTION_NAME = CollectionNames.CACHED_URLS

    async def ensure_indexes(self) -> None:
        await self._col.create_index("url", unique=True)

    async def find_by_url(self, url: str) -> CacheRecord | None:
        """Return the stored record for *url*, or ``None`` if not found."""
        try:
            result = await self._col.find_one({"url": url}, {"_id": False})
        except PyMongoError as exc:
            logger.exception("MongoDB lookup failed for url=%s", url)
            raise RepositoryError(f"Metadata lookup failed: {exc}") from exc
        if result is None:
            return None
        return CacheRecord(**result)

    async def put(self, record: CacheRecord) -> CacheRecord:
        """Write *record*, fully replacing any existing document for its URL.

        Two first-time writers for the same URL can both miss the
        ``replace_one`` filter and race on the unique ``url`` index; the
        loser's ``DuplicateKeyError`` is resolved by replacing the winner's
        document, so the last write wins.
        """
        document = record.to_document()
        try:
            try:
                await self._col.replace_one({"url": record.url}, document, upsert=True)
            except DuplicateKeyError:
                await self._col.replace_one({"url": record.url}, document)
        except PyMongoError as exc:
            logger.exception("MongoDB write failed for url=%s", record.url)
            raise RepositoryError(f"Metadata write failed: {exc}") from exc
        return record
