"""Failures surfaced by ``CacheService.cache``.

Every failure ends the call.  The underlying I/O exception is chained as
``__cause__``.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class CacheErrorKind(str, Enum):
    METADATA_LOOKUP_FAILED = "metadata_lookup_failed"
    ORIGIN_UNREACHABLE = "origin_unreachable"
    BLOB_WRITE_FAILED = "blob_write_failed"
    METADATA_WRITE_FAILED = "metadata_write_failed"


class CacheError(Exception):
    """Base class; ``kind`` identifies which pipeline step failed."""

    kind: ClassVar[CacheErrorKind]

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class MetadataLookupFailed(CacheError):
    kind = CacheErrorKind.METADATA_LOOKUP_FAILED


class OriginUnreachable(CacheError):
    """Transport error or non-200 status from the probe or the fetch."""

    kind = CacheErrorKind.ORIGIN_UNREACHABLE


class BlobWriteFailed(CacheError):
    kind = CacheErrorKind.BLOB_WRITE_FAILED


class MetadataWriteFailed(CacheError):
    """The blob is already written; the metadata store is now behind it."""

    kind = CacheErrorKind.METADATA_WRITE_FAILED
