"""Key-value persistence behind a narrow repository interface.

Records are JSON-compatible values addressed by string keys. Every record
carries a version number that the store bumps on each write, so callers can
do read-modify-write cycles with conditional writes instead of blind
overwrites.
"""

import asyncio
import copy
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pymongo import AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from codecollab.config import Config
from codecollab.errors import UpstreamError

_T = TypeVar("_T")


class RecordModel(BaseModel):
    """Base for stored and exchanged records, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_serialization_defaults_required=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Convert the model to a JSON-compatible dictionary for storage and events."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class Versioned:
    value: Any
    version: int


class KeyValueStore(ABC):
    """Repository interface shared by all store backends."""

    async def open(self) -> None:
        """Prepare the backend on application startup."""

    async def close(self) -> None:
        """Release backend resources on application shutdown."""

    async def get(self, key: str) -> Any | None:
        """Return the value stored under key, or None if absent or expired."""
        record = await self.get_versioned(key)
        return None if record is None else record.value

    @abstractmethod
    async def get_versioned(self, key: str) -> Versioned | None:
        """Return the value together with its current version."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Unconditionally write value, optionally expiring after ttl seconds."""

    @abstractmethod
    async def set_if_version(self, key: str, value: Any, version: int | None) -> bool:
        """Write value only if the record is still at version.

        A version of None means the key must not exist yet. Returns False when
        the condition does not hold and nothing was written.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    async def delete_if_version(self, key: str, version: int) -> bool:
        """Remove key only if the record is still at version."""

    @abstractmethod
    async def add_to_set(self, key: str, member: str) -> None:
        """Atomically add member to the string set stored under key, creating it if needed."""

    @abstractmethod
    async def remove_from_set(self, key: str, member: str) -> None:
        """Atomically remove member from the string set stored under key."""


class MemoryKeyValueStore(KeyValueStore):
    """In-process backend for development and tests."""

    def __init__(self) -> None:
        self._records: dict[str, tuple[Any, int, float | None]] = {}

    def _live(self, key: str) -> tuple[Any, int, float | None] | None:
        record = self._records.get(key)
        if record is None:
            return None
        expires_at = record[2]
        if expires_at is not None and expires_at <= time.monotonic():
            del self._records[key]
            return None
        return record

    async def get_versioned(self, key: str) -> Versioned | None:
        record = self._live(key)
        if record is None:
            return None
        return Versioned(value=copy.deepcopy(record[0]), version=record[1])

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        record = self._live(key)
        version = 1 if record is None else record[1] + 1
        expires_at = None if ttl is None else time.monotonic() + ttl
        self._records[key] = (copy.deepcopy(value), version, expires_at)

    async def set_if_version(self, key: str, value: Any, version: int | None) -> bool:
        record = self._live(key)
        current = None if record is None else record[1]
        if current != version:
            return False
        self._records[key] = (copy.deepcopy(value), (version or 0) + 1, None)
        return True

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    async def delete_if_version(self, key: str, version: int) -> bool:
        record = self._live(key)
        if record is None or record[1] != version:
            return False
        del self._records[key]
        return True

    async def add_to_set(self, key: str, member: str) -> None:
        record = self._live(key)
        members = [] if record is None else list(record[0])
        if member not in members:
            members.append(member)
        self._records[key] = (members, 1 if record is None else record[1] + 1, None)

    async def remove_from_set(self, key: str, member: str) -> None:
        record = self._live(key)
        if record is None:
            return
        members = [m for m in record[0] if m != member]
        self._records[key] = (members, record[1] + 1, record[2])


class MongoKeyValueStore(KeyValueStore):
    """MongoDB backend: one document per key in the `kv` collection.

    Document shape: {_id: key, value: any, version: int, expires_at: datetime | None}.
    Expired documents are reaped by a TTL index and filtered out on read.
    """

    def __init__(self, database_url: str, timeout: float) -> None:
        self._timeout = timeout
        self._client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(
            database_url, timeoutMS=int(timeout * 1000)
        )
        database = self._client.get_database(urlparse(database_url).path[1:])
        self._collection = database.get_collection("kv")

    async def _call(self, operation: Awaitable[_T]) -> _T:
        try:
            async with asyncio.timeout(self._timeout):
                return await operation
        except (PyMongoError, TimeoutError) as e:
            raise UpstreamError(f"Store operation failed: {e!r}") from e

    @staticmethod
    def _live_filter(key: str) -> dict[str, Any]:
        return {"_id": key, "$or": [{"expires_at": None}, {"expires_at": {"$gt": datetime.now(UTC)}}]}

    async def open(self) -> None:
        await self._call(self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0))

    async def close(self) -> None:
        await self._client.aclose()

    async def get_versioned(self, key: str) -> Versioned | None:
        doc = await self._call(self._collection.find_one(self._live_filter(key)))
        if doc is None:
            return None
        return Versioned(value=doc["value"], version=int(doc["version"]))

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        expires_at = None if ttl is None else datetime.now(UTC) + timedelta(seconds=ttl)
        await self._call(
            self._collection.update_one(
                {"_id": key},
                {"$set": {"value": value, "expires_at": expires_at}, "$inc": {"version": 1}},
                upsert=True,
            )
        )

    async def set_if_version(self, key: str, value: Any, version: int | None) -> bool:
        if version is None:

            async def insert() -> bool:
                try:
                    await self._collection.insert_one({"_id": key, "value": value, "version": 1, "expires_at": None})
                except DuplicateKeyError:
                    return False
                return True

            return await self._call(insert())

        result = await self._call(
            self._collection.update_one(
                {"_id": key, "version": version},
                {"$set": {"value": value, "expires_at": None}, "$inc": {"version": 1}},
            )
        )
        return result.matched_count == 1

    async def delete(self, key: str) -> None:
        await self._call(self._collection.delete_one({"_id": key}))

    async def delete_if_version(self, key: str, version: int) -> bool:
        result = await self._call(self._collection.delete_one({"_id": key, "version": version}))
        return result.deleted_count == 1

    async def add_to_set(self, key: str, member: str) -> None:
        await self._call(
            self._collection.update_one(
                {"_id": key},
                {"$addToSet": {"value": member}, "$inc": {"version": 1}, "$setOnInsert": {"expires_at": None}},
                upsert=True,
            )
        )

    async def remove_from_set(self, key: str, member: str) -> None:
        await self._call(self._collection.update_one({"_id": key}, {"$pull": {"value": member}, "$inc": {"version": 1}}))


def create_store(config: Config) -> KeyValueStore:
    """Build the store backend selected by configuration."""
    if config.store_backend == "memory":
        return MemoryKeyValueStore()
    if not config.database_url:
        raise ValueError("CODECOLLAB_DATABASE_URL is required for the mongo store backend")
    return MongoKeyValueStore(config.database_url, config.remote_timeout)
