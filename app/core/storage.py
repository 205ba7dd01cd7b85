"""S3 client lifecycle.

boto3 clients are thread-safe and meant to be shared, so one client is
created at startup and handed to every ``BlobRepository``.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config

from app.core.config import settings

logger = logging.getLogger(__name__)


class StorageManager:
    """Singleton owner of the S3 client.

    Use the module-level ``storage`` instance; do not instantiate directly.
    """

    _instance: StorageManager | None = None
    _client: Any = None

    def __new__(cls) -> StorageManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def connect(self) -> None:
        """Create the S3 client from settings.

        Static credentials are only passed when configured; otherwise boto3
        falls back to its usual provider chain (env, profile, instance role).
        """
        kwargs: dict[str, Any] = {
            "endpoint_url": settings.s3_endpoint_url,
            "region_name": settings.aws_region,
            "config": Config(retries={"max_attempts": 1, "mode": "standard"}),
        }
        if settings.aws_access_key_id and settings.aws_secret_access_key:
            kwargs["aws_access_key_id"] = settings.aws_access_key_id
            kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
        self._client = boto3.client("s3", **kwargs)
        logger.info(
            "S3 client ready (endpoint=%s, bucket=%s).",
            settings.s3_endpoint_url or "default",
            settings.s3_bucket,
        )

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("S3 client closed.")

    def get_client(self) -> Any:
        if self._client is None:
            raise RuntimeError(
                "StorageManager is not connected. Call connect() first."
            )
        return self._client


storage: StorageManager = StorageManager()
