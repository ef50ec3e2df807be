"""
Document store adapter over Motor.

DocumentStore is the only place the gateway talks to the driver. It
addresses collections by physical name, times every call, and converts
driver failures into StoreError / StoreConnectionError carrying the
driver's own error text.
"""

import logging
import time
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError

from ..constants import DEFAULT_HEALTH_TIMEOUT_SECONDS
from ..exceptions import StoreConnectionError, StoreError
from ..observability import HealthCheckResult, check_mongodb_health, record_operation

logger = logging.getLogger(__name__)


class DocumentStore:
    """
    Async CRUD and metadata access to one MongoDB database.
    """

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._db = database

    @property
    def database_name(self) -> str:
        return self._db.name

    @asynccontextmanager
    async def _operation(
        self, operation: str, collection_name: str | None = None
    ) -> AsyncIterator[None]:
        """Time a driver call and translate its failures."""
        start_time = time.time()
        success = False
        tags = {"collection": collection_name} if collection_name else {}
        try:
            yield
            success = True
        except ConnectionFailure as e:
            logger.exception(f"Store connection failed during {operation}")
            raise StoreConnectionError(
                f"Failed to {operation}: {e}",
                collection_name=collection_name,
                operation=operation,
            ) from e
        except PyMongoError as e:
            logger.exception(f"Store operation {operation} failed")
            raise StoreError(
                f"Failed to {operation}: {e}",
                collection_name=collection_name,
                operation=operation,
            ) from e
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(f"store.{operation}", duration_ms, success=success, **tags)

    async def create(
        self, name: str, documents: Mapping[str, Any] | list[Mapping[str, Any]]
    ) -> list[dict[str, Any]]:
        """
        Insert one document or a batch.

        The caller's documents are copied, never mutated.

        Returns:
            The inserted documents, including their generated ``_id``
        """
        if isinstance(documents, Mapping):
            doc = dict(documents)
            async with self._operation("insert_one", name):
                await self._db[name].insert_one(doc)
            return [doc]

        docs = [dict(document) for document in documents]
        if not docs:
            return []
        async with self._operation("insert_many", name):
            await self._db[name].insert_many(docs)
        return docs

    async def find(
        self,
        name: str,
        filter: Mapping[str, Any] | None = None,
        projection: Mapping[str, Any] | None = None,
        skip: int | None = None,
        limit: int | None = None,
        sort: list[tuple[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Run a query and return all matching documents in cursor order."""
        async with self._operation("find", name):
            cursor = self._db[name].find(filter or {}, projection)
            if sort:
                cursor = cursor.sort(sort)
            if skip is not None:
                cursor = cursor.skip(skip)
            if limit is not None:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=None)

    async def find_all(self, name: str) -> list[dict[str, Any]]:
        return await self.find(name)

    async def find_one(
        self,
        name: str,
        filter: Mapping[str, Any],
        projection: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        async with self._operation("find_one", name):
            return await self._db[name].find_one(filter, projection)

    async def update(
        self, name: str, filter: Mapping[str, Any], update: Mapping[str, Any]
    ) -> int:
        """Apply an update to the first matching document; returns the matched count."""
        async with self._operation("update_one", name):
            result = await self._db[name].update_one(filter, update)
        return result.matched_count

    async def remove(self, name: str, filter: Mapping[str, Any]) -> int:
        async with self._operation("delete_one", name):
            result = await self._db[name].delete_one(filter)
        return result.deleted_count

    async def remove_all(self, name: str) -> int:
        async with self._operation("delete_many", name):
            result = await self._db[name].delete_many({})
        return result.deleted_count

    async def drop_collection(self, name: str) -> Any:
        async with self._operation("drop_collection", name):
            return await self._db.drop_collection(name)

    async def collection_names(self) -> list[str]:
        async with self._operation("list_collection_names"):
            return await self._db.list_collection_names()

    async def collection_info(self, name: str) -> dict[str, int]:
        """Size in bytes and document count of a collection."""
        async with self._operation("coll_stats", name):
            stats = await self._db.command("collStats", name)
        return {"size": int(stats.get("size", 0)), "count": int(stats.get("count", 0))}

    async def index(self, name: str, keys: list[tuple[str, Any]]) -> str:
        """Create an index and return its name."""
        async with self._operation("create_index", name):
            return await self._db[name].create_index(keys)

    @staticmethod
    def create_id_from_hex(value: Any) -> ObjectId:
        """
        Parse a document id.

        Raises:
            bson.errors.InvalidId: If value is not a valid ObjectId string
            TypeError: If value has an unsupported type
        """
        return ObjectId(value)

    async def check_status(
        self, timeout_seconds: float = DEFAULT_HEALTH_TIMEOUT_SECONDS
    ) -> HealthCheckResult:
        """Ping the server through the database's client."""
        return await check_mongodb_health(self._db.client, timeout_seconds)
