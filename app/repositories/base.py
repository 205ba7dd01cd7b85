"""Base classes shared by the repositories.

``BaseRepository`` wires a repository to a Motor collection.  Every
MongoDB-backed repository in this project extends it:

    1. Add the collection name to ``CollectionNames``.
    2. Subclass ``BaseRepository``, set ``COLLECTION_NAME``, and override
       ``ensure_indexes()`` with the indexes your collection needs.
    3. Call ``ensure_indexes()`` from the app lifespan (``main.py``).

Store failures surface as ``RepositoryError`` so callers never depend on
driver-specific exception types.
"""

from __future__ import annotations

import logging
from abc import ABC
from typing import ClassVar, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection

from app.core.database import DatabaseManager

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="BaseRepository")


class RepositoryError(RuntimeError):
    """Raised when a backing store rejects or fails an operation."""


class BaseRepository(ABC):
    """Base class that wires a repository to its Motor collection."""

    COLLECTION_NAME: ClassVar[str]

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._col = collection

    @classmethod
    def from_db(cls: type[T], db: DatabaseManager) -> T:
        """Instantiate the repository using the live ``DatabaseManager``.

        Usage::

            repo = CacheRepository.from_db(db)
        """
        return cls(db.get_collection(cls.COLLECTION_NAME))

    async def ensure_indexes(self) -> None:
        """Create collection indexes.  Called once at startup.

        The default is a no-op; MongoDB skips indexes that already exist.
        """
