from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

H = TypeVar("H", bound="_HeaderFields")


class CacheStatus(str, Enum):
    """What a single ``cache()`` call did."""

    ADDED = "added"
    CACHED = "cached"
    UPDATED = "updated"


def _field_name(header: str) -> str:
    return header.lower().replace("-", "_")


class _HeaderFields(BaseModel):
    """Optional string fields filled from response headers of the same name."""

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_headers(cls: type[H], headers: Mapping[str, str]) -> H:
        values = {_field_name(name): value for name, value in headers.items() if value}
        return cls(**{k: v for k, v in values.items() if k in cls.model_fields})


class Revalidators(_HeaderFields):
    """Origin validators compared against a HEAD probe."""

    etag: Optional[str] = None
    last_modified: Optional[str] = None


class ResponseHeaders(_HeaderFields):
    """Descriptive headers captured at fetch time.  Never used for freshness."""

    content_type: Optional[str] = None
    content_length: Optional[str] = None
    content_encoding: Optional[str] = None
    content_language: Optional[str] = None
    content_location: Optional[str] = None
    content_md5: Optional[str] = None
    date: Optional[str] = None
    expires: Optional[str] = None
    age: Optional[str] = None
    cache_control: Optional[str] = None


class CacheRecord(BaseModel):
    """One metadata-store entry per cached URL.

    ``bucket`` and ``key`` are assigned when the URL is first cached and are
    reused on every refresh.  ``status`` only describes the call that
    returned the record; it is never persisted.
    """

    url: str
    bucket: str
    key: str
    revalidators: Revalidators = Field(default_factory=Revalidators)
    headers: ResponseHeaders = Field(default_factory=ResponseHeaders)
    status: Optional[CacheStatus] = Field(default=None, exclude=True)

    def to_document(self) -> dict[str, Any]:
        """Serialise for the metadata store, omitting absent headers."""
        return self.model_dump(exclude_none=True)

    def with_status(self, status: CacheStatus) -> CacheRecord:
        return self.model_copy(update={"status": status})
