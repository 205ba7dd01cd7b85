from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.main import app
from app.repositories.blob.repository import BlobRepository
from app.repositories.cache.repository import CacheRepository
from app.services.cache.service import CacheService
from app.workers.fetcher import Fetcher

BUCKET = "test-bucket"


@pytest.fixture
def client():
    """TestClient with lifespan startup/shutdown hooks fully mocked."""
    with (
        patch(
            "app.core.database.DatabaseManager.connect",
            new_callable=AsyncMock,
        ),
        patch(
            "app.core.database.DatabaseManager.disconnect",
            new_callable=AsyncMock,
        ),
        patch(
            "app.core.database.DatabaseManager.get_collection",
            return_value=MagicMock(),
        ),
        patch("app.core.storage.StorageManager.connect"),
        patch("app.core.storage.StorageManager.disconnect"),
        patch(
            "app.core.storage.StorageManager.get_client",
            return_value=MagicMock(),
        ),
        patch(
            "app.repositories.cache.repository.CacheRepository.ensure_indexes",
            new_callable=AsyncMock,
        ),
        patch(
            "app.main.close_http_client",
            new_callable=AsyncMock,
        ),
    ):
        with TestClient(app) as c:
            yield c


# ---------------------------------------------------------------------------
# In-memory stores for service and repository tests
# ---------------------------------------------------------------------------


@pytest.fixture
def collection():
    return AsyncMongoMockClient()["url_cache"]["cached_urls"]


@pytest.fixture
def repo(collection) -> CacheRepository:
    return CacheRepository(collection)


@pytest.fixture
def s3_objects() -> dict:
    """``(bucket, key) -> put_object kwargs`` for every object written."""
    return {}


@pytest.fixture
def s3_client(s3_objects):
    s3 = MagicMock()

    def put_object(**params):
        s3_objects[(params["Bucket"], params["Key"])] = params
        return {"ETag": '"stored"'}

    s3.put_object.side_effect = put_object
    return s3


@pytest.fixture
def blobs(s3_client) -> BlobRepository:
    return BlobRepository(s3_client)


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient(follow_redirects=True) as c:
        yield c


@pytest.fixture
def fetcher(http_client) -> Fetcher:
    return Fetcher(http_client)


@pytest.fixture
def service(repo, blobs, fetcher) -> CacheService:
    return CacheService(repo, blobs, fetcher, default_bucket=BUCKET)
