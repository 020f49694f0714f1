"""
Document-store adapter over PyMongo's asyncio API.

This is the only module that talks to MongoDB. Driver exceptions are
translated into the mongoscope taxonomy at this boundary:

- ConnectionFailure (server selection, network) -> StoreUnavailable
- any other PyMongoError / InvalidDocument      -> QueryExecutionError
- OverflowError (integers too large for BSON)   -> QueryExecutionError

Nothing is retried; a failed call ends the request.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from bson.errors import InvalidDocument
from pymongo import AsyncMongoClient
from pymongo.errors import ConnectionFailure, PyMongoError

from .errors import QueryExecutionError, StoreUnavailable

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection
    from pymongo.asynchronous.cursor import AsyncCursor
    from pymongo.asynchronous.database import AsyncDatabase

    from .config.settings import Settings
    from .query.plan import QueryPlan

logger = logging.getLogger("mongoscope.store")


@dataclass
class PageResult:
    """One page of documents plus the total number of matches."""

    data: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0


def create_client(settings: "Settings") -> AsyncMongoClient:
    """Create the process-wide async client."""
    return AsyncMongoClient(
        settings.mongodb_uri.get_secret_value(),
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


@contextmanager
def translate_errors(action: str) -> Iterator[None]:
    """Re-raise driver failures as StoreUnavailable / QueryExecutionError."""
    try:
        yield
    except ConnectionFailure as e:
        logger.error(f"[STORE] {action} failed, store unreachable: {e}")
        raise StoreUnavailable(f"Database unavailable: {e}") from e
    except (PyMongoError, InvalidDocument, OverflowError) as e:
        logger.error(f"[STORE] {action} failed: {e}")
        raise QueryExecutionError(f"Something went wrong: {e}") from e


class CollectionStore:
    """
    Async operations on one collection.

    Example:
        ```python
        client = create_client(get_settings())
        store = CollectionStore(client["shop"], "orders")
        page = await store.aggregate_page(plan)
        ```
    """

    def __init__(self, database: "AsyncDatabase", collection_name: str):
        self.database = database
        self.name = collection_name

    @property
    def collection(self) -> "AsyncCollection":
        return self.database[self.name]

    async def aggregate_page(self, plan: "QueryPlan") -> PageResult:
        """Run a view plan and unpack its ``data`` / ``metadata.total`` facet."""
        with translate_errors("aggregate"):
            cursor = await self.collection.aggregate(plan.to_pipeline())
            results = await cursor.to_list(length=None)
        if not results:
            return PageResult()
        (result,) = results
        total = result.get("metadata", {}).get("total", 0)
        return PageResult(data=list(result.get("data", [])), total=int(total))

    def find_cursor(self, query: Mapping[str, Any], sort: Mapping[str, int]) -> "AsyncCursor":
        """Open an unbounded cursor for exports; the caller must close it."""
        with translate_errors("find"):
            return self.collection.find(dict(query), sort=list(sort.items()) or None)

    async def stats(self) -> dict[str, Any]:
        with translate_errors("collStats"):
            return await self.database.command("collStats", self.name)

    async def indexes(self) -> list[dict[str, Any]]:
        """List indexes as ``{"name", "key", ...}`` dicts."""
        with translate_errors("index_information"):
            info = await self.collection.index_information()
        indexes = []
        for name, spec in info.items():
            entry = {k: v for k, v in spec.items() if k != "key"}
            entry["name"] = name
            entry["key"] = dict(spec.get("key", []))
            indexes.append(entry)
        return indexes

    async def delete_many(self, query: Mapping[str, Any]) -> int:
        with translate_errors("delete_many"):
            result = await self.collection.delete_many(dict(query))
        return result.deleted_count

    async def drop(self) -> None:
        with translate_errors("drop"):
            await self.collection.drop()

    async def rename(self, new_name: str) -> None:
        with translate_errors("rename"):
            await self.collection.rename(new_name)

    async def compact(self) -> None:
        with translate_errors("compact"):
            await self.database.command("compact", self.name)

    async def create_collection(self, name: str) -> None:
        with translate_errors("create_collection"):
            await self.database.create_collection(name)

    async def create_index(self, keys: Mapping[str, Any]) -> str:
        with translate_errors("create_index"):
            return await self.collection.create_index(list(keys.items()))

    async def drop_index(self, name: str) -> None:
        with translate_errors("drop_index"):
            await self.collection.drop_index(name)

    async def insert_many(self, documents: list[dict[str, Any]]) -> int:
        with translate_errors("insert_many"):
            result = await self.collection.insert_many(documents)
        return len(result.inserted_ids)
