from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.models.cache.record import CacheRecord, CacheStatus, ResponseHeaders, Revalidators
from app.repositories.base import RepositoryError
from app.repositories.blob.repository import BlobRepository
from app.repositories.cache.repository import CacheRepository
from app.workers.fetcher import HeaderSnapshot

URL = "https://example.com/data.csv"


def _record(**kwargs) -> CacheRecord:
    defaults = dict(
        url=URL,
        bucket="bucket",
        key="key-1",
        revalidators=Revalidators(etag='"e1"'),
        headers=ResponseHeaders(content_type="text/csv", content_length="120"),
    )
    return CacheRecord(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# CacheRecord
# ---------------------------------------------------------------------------


class TestCacheRecord:
    def test_document_omits_absent_fields_and_status(self):
        record = _record().with_status(CacheStatus.ADDED)
        assert record.to_document() == {
            "url": URL,
            "bucket": "bucket",
            "key": "key-1",
            "revalidators": {"etag": '"e1"'},
            "headers": {"content_type": "text/csv", "content_length": "120"},
        }

    def test_with_status_copies(self):
        record = _record()
        cached = record.with_status(CacheStatus.CACHED)
        assert cached.status is CacheStatus.CACHED
        assert record.status is None

    def test_from_headers_maps_header_names(self):
        snapshot = HeaderSnapshot(
            {
                "ETag": '"e"',
                "Last-Modified": "Wed, 03 Jan 2024 10:00:00 GMT",
                "Content-MD5": "Q2hlY2sgSW50ZWdyaXR5IQ==",
                "Cache-Control": "no-cache",
                "Expires": "0",
            }
        )
        assert Revalidators.from_headers(snapshot) == Revalidators(
            etag='"e"', last_modified="Wed, 03 Jan 2024 10:00:00 GMT"
        )
        headers = ResponseHeaders.from_headers(snapshot)
        assert isinstance(headers, ResponseHeaders)
        assert headers.content_md5 == "Q2hlY2sgSW50ZWdyaXR5IQ=="
        assert headers.cache_control == "no-cache"
        assert headers.expires == "0"
        assert headers.content_type is None

    def test_from_headers_skips_empty_values(self):
        assert Revalidators.from_headers({"etag": "", "last-modified": ""}) == Revalidators()


# ---------------------------------------------------------------------------
# CacheRepository
# ---------------------------------------------------------------------------


class TestCacheRepository:
    async def test_put_then_find(self, repo):
        record = _record()
        assert await repo.put(record) == record
        assert await repo.find_by_url(URL) == record

    async def test_find_miss(self, repo):
        assert await repo.find_by_url("https://example.com/missing") is None

    async def test_put_is_a_full_overwrite(self, repo, collection):
        await repo.put(_record(headers=ResponseHeaders(content_type="text/csv", age="5")))
        await repo.put(_record(revalidators=Revalidators(last_modified="x"), headers=ResponseHeaders()))

        assert await collection.count_documents({"url": URL}) == 1
        document = await collection.find_one({"url": URL}, {"_id": False})
        assert document["revalidators"] == {"last_modified": "x"}
        assert document["headers"] == {}

    async def test_values_are_stored_as_strings(self, repo, collection):
        await repo.put(_record())
        document = await collection.find_one({"url": URL})
        assert document["headers"]["content_length"] == "120"

    async def test_ensure_indexes_makes_url_unique(self, repo, collection):
        await repo.ensure_indexes()
        await collection.insert_one({"url": URL})
        with pytest.raises(DuplicateKeyError):
            await collection.insert_one({"url": URL})

    async def test_lookup_error_is_wrapped(self):
        col = MagicMock()
        col.find_one = AsyncMock(side_effect=PyMongoError("connection reset"))
        with pytest.raises(RepositoryError, match="connection reset"):
            await CacheRepository(col).find_by_url(URL)

    async def test_write_error_is_wrapped(self):
        col = MagicMock()
        col.replace_one = AsyncMock(side_effect=PyMongoError("not primary"))
        with pytest.raises(RepositoryError, match="not primary"):
            await CacheRepository(col).put(_record())

    async def test_duplicate_key_race_falls_back_to_replace(self):
        col = MagicMock()
        col.replace_one = AsyncMock(side_effect=[DuplicateKeyError("dup"), MagicMock()])
        record = _record()

        await CacheRepository(col).put(record)

        assert col.replace_one.call_count == 2
        second = col.replace_one.call_args_list[1]
        assert second.args == ({"url": URL}, record.to_document())
        assert "upsert" not in second.kwargs


# ---------------------------------------------------------------------------
# BlobRepository
# ---------------------------------------------------------------------------


class TestBlobRepository:
    async def test_put_sends_body_and_content_type(self, blobs, s3_client):
        await blobs.put("bucket", "key-1", b"a,b\n1,2\n", "text/csv")
        s3_client.put_object.assert_called_once_with(
            Bucket="bucket", Key="key-1", Body=b"a,b\n1,2\n", ContentType="text/csv"
        )

    async def test_put_without_content_type(self, blobs, s3_client):
        await blobs.put("bucket", "key-1", b"\x00")
        s3_client.put_object.assert_called_once_with(Bucket="bucket", Key="key-1", Body=b"\x00")

    async def test_put_overwrites(self, blobs, s3_objects):
        await blobs.put("bucket", "key-1", b"v1")
        await blobs.put("bucket", "key-1", b"v2")
        assert s3_objects[("bucket", "key-1")]["Body"] == b"v2"

    @pytest.mark.parametrize(
        "error",
        [
            ClientError({"Error": {"Code": "NoSuchBucket", "Message": "gone"}}, "PutObject"),
            EndpointConnectionError(endpoint_url="http://localhost:9000"),
        ],
    )
    async def test_errors_are_wrapped(self, blobs, s3_client, error):
        s3_client.put_object.side_effect = error
        with pytest.raises(RepositoryError, match="Blob write failed"):
            await blobs.put("bucket", "key-1", b"data")

    def test_from_storage_uses_shared_client(self):
        storage = MagicMock()
        blobs = BlobRepository.from_storage(storage)
        storage.get_client.assert_called_once_with()
        assert blobs._client is storage.get_client.return_value
