from __future__ import annotations

import logging
from typing import Any

from anyio import to_thread
from botocore.exceptions import BotoCoreError, ClientError

from app.core.storage import StorageManager
from app.repositories.base import RepositoryError

logger = logging.getLogger(__name__)


class BlobRepository:
    """Object-store writes for cached bodies.

    boto3 is blocking, so every call runs in a worker thread.
    """

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_storage(cls, storage: StorageManager) -> BlobRepository:
        return cls(storage.get_client())

    def _put(self, bucket: str, key: str, body: bytes, content_type: str | None) -> None:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        self._client.put_object(**params)

    async def put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: str | None = None,
    ) -> None:
        """Store *body* at ``bucket/key``, overwriting any existing object."""
        try:
            await to_thread.run_sync(self._put, bucket, key, body, content_type)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("S3 put failed for s3://%s/%s", bucket, key)
            raise RepositoryError(f"Blob write failed: {exc}") from exc
        logger.debug("Stored %d bytes at s3://%s/%s", len(body), bucket, key)
