"""Tests for the PyMongo store adapter, using stand-in driver objects."""

import pytest
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from mongoscope.errors import QueryExecutionError, StoreUnavailable
from mongoscope.query import MatchFilter, QueryOptions, build_query_plan
from mongoscope.store import CollectionStore, translate_errors


class DriverCursor:
    def __init__(self, results):
        self.results = results

    async def to_list(self, length=None):
        return list(self.results)


class DriverCollection:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.pipelines = []

    async def aggregate(self, pipeline):
        if self.error is not None:
            raise self.error
        self.pipelines.append(pipeline)
        return DriverCursor(self.results)

    async def index_information(self):
        return {
            "_id_": {"v": 2, "key": [("_id", 1)]},
            "name_1_age_-1": {"v": 2, "key": [("name", 1), ("age", -1)], "unique": True},
        }


class DriverDatabase:
    name = "shop"

    def __init__(self, collection):
        self._collection = collection
        self.commands = []

    async def command(self, *args):
        self.commands.append(args)
        return {"ok": 1}

    def __getitem__(self, name):
        return self._collection


class TestTranslateErrors:
    def test_connection_failure(self) -> None:
        with pytest.raises(StoreUnavailable, match="Database unavailable"):
            with translate_errors("test"):
                raise ServerSelectionTimeoutError("no servers")

    def test_driver_failure(self) -> None:
        with pytest.raises(QueryExecutionError, match="Something went wrong"):
            with translate_errors("test"):
                raise OperationFailure("unknown operator: $bogus")

    def test_integer_overflow(self) -> None:
        with pytest.raises(QueryExecutionError, match="8-byte ints"):
            with translate_errors("test"):
                raise OverflowError("MongoDB can only handle up to 8-byte ints")

    def test_other_errors_pass_through(self) -> None:
        with pytest.raises(KeyError):
            with translate_errors("test"):
                raise KeyError("x")


class TestCollectionStore:
    @pytest.mark.asyncio
    async def test_aggregate_page_unpacks_facet(self) -> None:
        collection = DriverCollection(results=[{"metadata": {"total": 42}, "data": [{"_id": 1}, {"_id": 2}]}])
        store = CollectionStore(DriverDatabase(collection), "orders")
        plan = build_query_plan(MatchFilter({"a": 1}), QueryOptions(limit=2))

        page = await store.aggregate_page(plan)

        assert page.total == 42
        assert page.data == [{"_id": 1}, {"_id": 2}]
        assert collection.pipelines == [plan.to_pipeline()]

    @pytest.mark.asyncio
    async def test_aggregate_page_empty_result(self) -> None:
        store = CollectionStore(DriverDatabase(DriverCollection(results=[])), "orders")
        page = await store.aggregate_page(build_query_plan(MatchFilter(), QueryOptions(limit=10)))
        assert page.total == 0
        assert page.data == []

    @pytest.mark.asyncio
    async def test_aggregate_failure_is_translated(self) -> None:
        collection = DriverCollection(error=OperationFailure("bad stage"))
        store = CollectionStore(DriverDatabase(collection), "orders")
        with pytest.raises(QueryExecutionError):
            await store.aggregate_page(build_query_plan(MatchFilter(), QueryOptions(limit=10)))

    @pytest.mark.asyncio
    async def test_indexes(self) -> None:
        store = CollectionStore(DriverDatabase(DriverCollection()), "orders")
        indexes = await store.indexes()

        assert indexes[0] == {"v": 2, "name": "_id_", "key": {"_id": 1}}
        assert indexes[1]["key"] == {"name": 1, "age": -1}
        assert list(indexes[1]["key"]) == ["name", "age"]
        assert indexes[1]["unique"] is True

    @pytest.mark.asyncio
    async def test_oversized_skip_is_a_query_error(self) -> None:
        """The driver cannot encode a skip past 64 bits; that is a bad request, not a crash."""
        collection = DriverCollection(error=OverflowError("MongoDB can only handle up to 8-byte ints"))
        store = CollectionStore(DriverDatabase(collection), "orders")
        plan = build_query_plan(MatchFilter(), QueryOptions(skip=2**64, limit=10))

        with pytest.raises(QueryExecutionError):
            await store.aggregate_page(plan)

    @pytest.mark.asyncio
    async def test_compact_runs_command(self) -> None:
        database = DriverDatabase(DriverCollection())
        await CollectionStore(database, "orders").compact()
        assert database.commands == [("compact", "orders")]
