from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from app.models.cache.record import CacheRecord, CacheStatus, ResponseHeaders, Revalidators
from app.repositories.base import RepositoryError
from app.repositories.blob.repository import BlobRepository
from app.repositories.cache.repository import CacheRepository
from app.services.cache.errors import (
    BlobWriteFailed,
    CacheError,
    MetadataLookupFailed,
    MetadataWriteFailed,
    OriginUnreachable,
)
from app.workers.fetcher import Fetcher, FetchError, HeaderSnapshot

logger = logging.getLogger(__name__)


def new_object_key() -> str:
    """Return a fresh, globally unique object-store key."""
    return str(uuid.uuid4())


def is_fresh(record: CacheRecord, probe: HeaderSnapshot) -> bool:
    """Decide whether *record* still matches the origin.

    When both sides carry an etag, the etag alone decides.  Otherwise a
    stored last-modified is compared.  A record with neither validator is
    never fresh.
    """
    stored = record.revalidators
    if stored.etag is not None and "etag" in probe:
        return probe["etag"] == stored.etag
    if stored.last_modified is not None:
        return probe.get("last-modified") == stored.last_modified
    return False


class CacheService:
    """Keeps one durable copy of a URL's body and refreshes it on change.

    Stateless between calls: everything lives in the metadata store and the
    object store.  Concurrent calls for the same URL are not coordinated; both
    may run a store cycle and the last metadata write wins.
    """

    def __init__(
        self,
        repo: CacheRepository,
        blobs: BlobRepository,
        fetcher: Fetcher,
        default_bucket: str,
        key_factory: Callable[[], str] = new_object_key,
    ) -> None:
        self._repo = repo
        self._blobs = blobs
        self._fetcher = fetcher
        self._default_bucket = default_bucket
        self._key_factory = key_factory

    async def get(self, url: str) -> CacheRecord | None:
        """Return the stored record for *url* without contacting the origin."""
        try:
            return await self._repo.find_by_url(url)
        except RepositoryError as exc:
            raise MetadataLookupFailed(url, str(exc)) from exc

    async def cache(self, url: str) -> CacheRecord:
        """Ensure a current copy of *url* is stored.

        Returns the record with ``status`` set to ``added``, ``cached`` or
        ``updated``.

        Raises:
            MetadataLookupFailed: the metadata store could not be read.
            OriginUnreachable: the probe or the fetch failed.
            BlobWriteFailed: the body could not be written.
            MetadataWriteFailed: the body was written but its record was not.
        """
        existing = await self.get(url)

        if existing is None:
            record = await self._store(url, self._default_bucket, self._key_factory())
            logger.info("Added %s at s3://%s/%s", url, record.bucket, record.key)
            return record.with_status(CacheStatus.ADDED)

        try:
            probe = await self._fetcher.probe(url)
        except FetchError as exc:
            logger.warning("Probe failed for %s: %s", url, exc)
            raise OriginUnreachable(url, str(exc), status_code=exc.status_code) from exc

        if is_fresh(existing, probe):
            logger.info("Cached copy of %s is fresh", url)
            return existing.with_status(CacheStatus.CACHED)

        record = await self._store(url, existing.bucket, existing.key)
        logger.info("Updated %s at s3://%s/%s", url, record.bucket, record.key)
        return record.with_status(CacheStatus.UPDATED)

    async def _store(self, url: str, bucket: str, key: str) -> CacheRecord:
        """Fetch the body, write the blob, then write the record."""
        try:
            resource = await self._fetcher.fetch_body(url)
        except FetchError as exc:
            logger.warning("Fetch failed for %s: %s", url, exc)
            raise OriginUnreachable(url, str(exc), status_code=exc.status_code) from exc

        record = CacheRecord(
            url=url,
            bucket=bucket,
            key=key,
            revalidators=Revalidators.from_headers(resource.headers),
            headers=ResponseHeaders.from_headers(resource.headers),
        )

        try:
            await self._blobs.put(bucket, key, resource.content, record.headers.content_type)
        except RepositoryError as exc:
            raise BlobWriteFailed(url, str(exc)) from exc

        try:
            return await self._repo.put(record)
        except RepositoryError as exc:
            raise MetadataWriteFailed(url, str(exc)) from exc

    async def background_cache(self, url: str) -> None:
        """Fire-and-forget wrapper for ``cache``.

        FastAPI cannot propagate background task exceptions to the original
        response, so failures are logged here instead of raised.
        """
        try:
            await self.cache(url)
        except CacheError as exc:
            logger.error("Background cache failed for %s: %s", url, exc)
        except Exception as exc:
            logger.exception("Unexpected error in background_cache for %s: %s", url, exc)
