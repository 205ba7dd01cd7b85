from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import HttpUrl, ValidationError

from app.core.config import settings
from app.core.database import db
from app.core.storage import storage
from app.models.cache.schemas import CacheCreateRequest, CacheResponse
from app.models.common import AcceptedResponse, ErrorResponse
from app.repositories.blob.repository import BlobRepository
from app.repositories.cache.repository import CacheRepository
from app.services.cache.errors import CacheError, OriginUnreachable
from app.services.cache.service import CacheService
from app.workers.fetcher import Fetcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cache", tags=["cache"])


# ---------------------------------------------------------------------------
# Dependency
# ---------------------------------------------------------------------------


def _get_service() -> CacheService:
    """FastAPI dependency that builds a ``CacheService`` for each request."""
    return CacheService(
        CacheRepository.from_db(db),
        BlobRepository.from_storage(storage),
        Fetcher(),
        default_bucket=settings.s3_bucket,
    )


def _error_response(exc: CacheError) -> JSONResponse:
    status_code = 502 if isinstance(exc, OriginUnreachable) else 500
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(detail=exc.message, kind=exc.kind.value).model_dump(),
    )


# ---------------------------------------------------------------------------
# POST /cache
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=CacheResponse,
    response_model_exclude_none=True,
    responses={502: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Cache or revalidate a URL",
)
async def post_cache(
    request: CacheCreateRequest,
    service: CacheService = Depends(_get_service),
) -> CacheResponse | JSONResponse:
    """Make sure a current copy of the URL is stored.

    - **200** — ``status`` is ``added``, ``cached`` or ``updated``
    - **422** — invalid URL format
    - **502** — origin unreachable or answered with a non-200 status
    - **500** — metadata store or object store failure
    """
    url = str(request.url)
    try:
        record = await service.cache(url)
    except CacheError as exc:
        logger.warning("POST /cache failed for %s: %s", url, exc)
        return _error_response(exc)
    return CacheResponse.from_record(record)


# ---------------------------------------------------------------------------
# GET /cache
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=CacheResponse,
    response_model_exclude_none=True,
    responses={202: {"model": AcceptedResponse}, 500: {"model": ErrorResponse}},
    summary="Retrieve the stored record for a URL",
)
async def get_cache(
    url: str,
    background_tasks: BackgroundTasks,
    service: CacheService = Depends(_get_service),
) -> CacheResponse | JSONResponse:
    """Return the stored record for *url* without revalidating it.

    On a miss, returns **202 Accepted** and caches the URL in the background.

    - **200** — record found and returned
    - **202** — not cached yet; caching has been scheduled
    - **422** — ``url`` missing or not a valid HTTP URL
    - **500** — metadata store failure
    """
    try:
        normalised_url = str(HttpUrl(url))
    except ValidationError:
        raise HTTPException(status_code=422, detail=f"Invalid URL: {url}")

    try:
        record = await service.get(normalised_url)
    except CacheError as exc:
        logger.error("GET /cache lookup failed for %s: %s", normalised_url, exc)
        return _error_response(exc)

    if record is None:
        background_tasks.add_task(service.background_cache, normalised_url)
        return JSONResponse(
            status_code=202,
            content=AcceptedResponse(
                message=f"{normalised_url} is not cached yet. Caching triggered."
            ).model_dump(),
        )
    return CacheResponse.from_record(record)
