from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, HttpUrl

from app.models.cache.record import CacheRecord, CacheStatus, ResponseHeaders, Revalidators


class CacheCreateRequest(BaseModel):
    """Request body for POST /cache."""

    url: HttpUrl


class CacheResponse(BaseModel):
    """API response shape for a cached URL.

    ``status`` is set on POST responses and left out of GET responses, where
    no cache decision was made.
    """

    url: str
    bucket: str
    key: str
    revalidators: Revalidators
    headers: ResponseHeaders
    status: Optional[CacheStatus] = None

    @classmethod
    def from_record(cls, record: CacheRecord) -> CacheResponse:
        return cls(
            url=record.url,
            bucket=record.bucket,
            key=record.key,
            revalidators=record.revalidators,
            headers=record.headers,
            status=record.status,
        )
