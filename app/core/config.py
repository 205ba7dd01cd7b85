from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # MongoDB (metadata store)
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "url_cache"
    mongo_max_pool_size: int = 10
    mongo_timeout_ms: int = 5000
    cache_collection: str = "cached_urls"

    # S3 (object store)
    s3_bucket: str = "url-cache"
    s3_endpoint_url: Optional[str] = None  # e.g. http://localhost:9000 for MinIO
    aws_region: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None

    # HTTP fetcher
    http_timeout: float = 10.0
    http_verify_ssl: bool = True  # set False behind corporate SSL-inspection proxies
    http_user_agent: str = "UrlCacheBot/1.0"

    # Logging
    log_level: str = "INFO"


settings = Settings()
