"""
Shared fixtures.

The service and API tests run against in-memory fakes of the store and its
cursors, so no MongoDB server is needed.
"""

from __future__ import annotations

from typing import Any

import pytest

from mongoscope.config.settings import Settings
from mongoscope.store import PageResult


class FakeCursor:
    """Async iterable of documents that records whether it was closed."""

    def __init__(self, documents: list[dict[str, Any]]):
        self._documents = list(documents)
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for document in self._documents:
            yield document

    async def close(self) -> None:
        self.closed = True


class FakeDatabase:
    name = "shop"


class FakeStore:
    """Stands in for CollectionStore and records every call."""

    def __init__(
        self,
        name: str = "orders",
        documents: list[dict[str, Any]] | None = None,
        total: int | None = None,
        fail_with: Exception | None = None,
    ):
        self.name = name
        self.database = FakeDatabase()
        self.documents = documents or []
        self.total = len(self.documents) if total is None else total
        self.fail_with = fail_with
        self.calls: list[tuple[str, tuple]] = []
        self.plans: list[Any] = []
        self.cursors: list[FakeCursor] = []
        self.inserted: list[dict[str, Any]] = []

    def _record(self, name: str, *args: Any) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((name, args))

    async def aggregate_page(self, plan) -> PageResult:
        self._record("aggregate_page", plan)
        self.plans.append(plan)
        return PageResult(data=[dict(d) for d in self.documents], total=self.total)

    async def stats(self) -> dict[str, Any]:
        self._record("stats")
        return {"count": self.total, "indexSizes": {"_id_": 4096}}

    async def indexes(self) -> list[dict[str, Any]]:
        self._record("indexes")
        return [{"name": "_id_", "key": {"_id": 1}}]

    def find_cursor(self, query, sort) -> FakeCursor:
        self._record("find_cursor", query, sort)
        cursor = FakeCursor(self.documents)
        self.cursors.append(cursor)
        return cursor

    async def delete_many(self, query) -> int:
        self._record("delete_many", query)
        return 3

    async def drop(self) -> None:
        self._record("drop")

    async def rename(self, new_name: str) -> None:
        self._record("rename", new_name)

    async def compact(self) -> None:
        self._record("compact")

    async def create_collection(self, name: str) -> None:
        self._record("create_collection", name)

    async def create_index(self, keys) -> str:
        self._record("create_index", keys)
        return "_".join(f"{k}_{v}" for k, v in keys.items())

    async def drop_index(self, name: str) -> None:
        self._record("drop_index", name)

    async def insert_many(self, documents) -> int:
        self._record("insert_many", documents)
        self.inserted.extend(documents)
        return len(documents)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(_env_file=None, documents_per_page=10)


@pytest.fixture
def store_factory():
    """Build FakeStore instances."""
    return FakeStore


@pytest.fixture
def cursor_factory():
    """Build FakeCursor instances."""
    return FakeCursor


@pytest.fixture
def sample_documents() -> list[dict[str, Any]]:
    return [
        {"_id": 1, "status": "active", "name": "alpha"},
        {"_id": 2, "status": "active", "total": 12.5},
        {"_id": 3, "status": "active", "name": "gamma", "tags": ["a", "b"]},
    ]
