"""Async HTTP fetcher.

Responsible solely for talking to origins: a HEAD probe for revalidation
and a full GET for the body.  Both make exactly one attempt.

Uses httpx.AsyncClient which is meant to be long-lived and reused.
A single shared client is managed by the module; see ``get_http_client``
and ``close_http_client`` for lifecycle hooks.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

#: Response headers captured from the origin.  Anything else is dropped.
TRACKED_HEADERS: tuple[str, ...] = (
    "etag",
    "last-modified",
    "content-type",
    "content-length",
    "content-encoding",
    "content-language",
    "content-location",
    "content-md5",
    "date",
    "expires",
    "age",
    "cache-control",
)

# Module-level shared client
_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient.  Creates one if missing."""
    global _http_client  # noqa: PLW0603
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout),
            follow_redirects=True,
            verify=settings.http_verify_ssl,
            headers={"User-Agent": settings.http_user_agent},
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared AsyncClient gracefully."""
    global _http_client  # noqa: PLW0603
    if _http_client is not None and not _http_client.is_closed:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client closed.")


class FetchError(Exception):
    """Raised when an origin cannot be reached or answers with a non-200."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HeaderSnapshot(Mapping[str, str]):
    """Read-only, case-insensitive view of the tracked response headers.

    Only headers the origin actually sent are present.  Empty values count
    as absent so freshness checks never compare against ``""``.
    """

    def __init__(self, headers: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = {}
        for name, value in (headers or {}).items():
            name = name.lower()
            if name in TRACKED_HEADERS and value:
                self._values[name] = value

    @classmethod
    def from_response(cls, response: httpx.Response) -> HeaderSnapshot:
        # httpx.Headers.items() already joins repeated headers with ", "
        return cls(response.headers)

    def __getitem__(self, name: str) -> str:
        return self._values[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"HeaderSnapshot({self._values!r})"


@dataclass(frozen=True)
class FetchedResource:
    """Result of a full GET: captured headers plus the untouched body bytes."""

    headers: HeaderSnapshot
    content: bytes


def _check_status(method: str, url: str, response: httpx.Response) -> None:
    if response.status_code != 200:
        raise FetchError(
            f"{method} {url} returned status {response.status_code}",
            status_code=response.status_code,
        )


def _request_error(method: str, url: str, exc: Exception) -> FetchError:
    if isinstance(exc, httpx.InvalidURL):
        return FetchError(f"Invalid URL '{url}': {exc}")
    return FetchError(f"{method} {url} failed: {exc.__class__.__name__}: {exc}")


class Fetcher:
    """Origin-facing HTTP operations used by the cache engine.

    Pass *client* to use a dedicated ``httpx.AsyncClient``; by default the
    module-level shared client is used.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client if self._client is not None else get_http_client()

    async def probe(self, url: str) -> HeaderSnapshot:
        """HEAD *url* and return its tracked headers.

        Raises:
            FetchError: on a transport error or any status other than 200.
        """
        try:
            response = await self.client.head(url)
        except (httpx.InvalidURL, httpx.RequestError) as exc:
            raise _request_error("HEAD", url, exc) from exc

        _check_status("HEAD", url, response)
        return HeaderSnapshot.from_response(response)

    async def fetch_body(self, url: str) -> FetchedResource:
        """GET *url* and return its tracked headers and raw body.

        The body is read from the raw stream: it is neither decoded as text
        nor decompressed, so it matches the captured ``content-encoding``.

        Raises:
            FetchError: on a transport error or any status other than 200.
        """
        try:
            async with self.client.stream("GET", url) as response:
                _check_status("GET", url, response)
                content = b"".join([chunk async for chunk in response.aiter_raw()])
        except (httpx.InvalidURL, httpx.RequestError) as exc:
            raise _request_error("GET", url, exc) from exc

        logger.debug("GET %s -> %d bytes", url, len(content))
        return FetchedResource(
            headers=HeaderSnapshot.from_response(response),
            content=content,
        )
