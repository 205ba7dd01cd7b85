from __future__ import annotations

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from app.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Singleton connection manager for the metadata store.

    Use the module-level ``db`` instance.  ``connect()`` runs once in the
    app lifespan; repositories pull collections through ``get_collection``.
    """

    _instance: DatabaseManager | None = None
    _client: AsyncIOMotorClient | None = None

    def __new__(cls) -> DatabaseManager:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Open the Motor client and fail fast if the server is unreachable."""
        self._client = AsyncIOMotorClient(
            settings.mongo_uri,
            maxPoolSize=settings.mongo_max_pool_size,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
        )
        await self._client.admin.command("ping")
        logger.info("Metadata store connected (db=%s).", settings.mongo_db)

    async def ping(self) -> bool:
        """Return ``True`` when the metadata store answers a ping."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except PyMongoError as exc:
            logger.warning("Metadata store ping failed: %s", exc)
            return False
        return True

    async def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Metadata store disconnected.")

    def get_collection(self, name: str) -> AsyncIOMotorCollection:
        if self._client is None:
            raise RuntimeError(
                "DatabaseManager is not connected. Call connect() first."
            )
        return self._client[settings.mongo_db][name]


#: Module-level singleton — import and use this everywhere.
db: DatabaseManager = DatabaseManager()
