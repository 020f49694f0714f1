"""Tests for sort and projection builders."""

import pytest

from mongoscope.errors import InvalidSort
from mongoscope.query import (
    CollectionQueryParams,
    QueryOptions,
    build_projection,
    build_query_options,
    build_sort,
)


class TestBuildSort:
    def test_directions_keep_order(self) -> None:
        result = build_sort({"name": "1", "age": "-1", "city": 1})
        assert result == {"name": 1, "age": -1, "city": 1}
        assert list(result) == ["name", "age", "city"]

    def test_empty(self) -> None:
        assert build_sort({}) == {}

    @pytest.mark.parametrize("token", ["0", "2", "asc", "", "1.5"])
    def test_invalid_direction(self, token: str) -> None:
        with pytest.raises(InvalidSort):
            build_sort({"name": token})


class TestBuildProjection:
    def test_shell_projection(self) -> None:
        assert build_projection("{name: 1, _id: 0}") == {"name": 1, "_id": 0}

    @pytest.mark.parametrize("text", ["", "{broken", "[1, 2]", "5"])
    def test_unusable_projection_means_all_fields(self, text: str) -> None:
        assert build_projection(text) == {}


class TestQueryOptions:
    def test_limit_comes_from_settings(self) -> None:
        params = CollectionQueryParams(skip=30, sort={"a": "-1"}, projection="{a: 1}")
        options = build_query_options(params, documents_per_page=25)
        assert options == QueryOptions(limit=25, skip=30, sort={"a": -1}, projection={"a": 1})

    @pytest.mark.parametrize("text,ignored", [("{a: 1}", False), ("", False), ("{broken", True), ("[1]", True)])
    def test_unusable_projection_is_flagged(self, text: str, ignored: bool) -> None:
        options = build_query_options(CollectionQueryParams(projection=text), documents_per_page=10)
        assert options.projection_ignored is ignored
        if ignored:
            assert options.projection == {}

    @pytest.mark.parametrize("limit", [0, -1])
    def test_limit_must_be_positive(self, limit: int) -> None:
        with pytest.raises(ValueError):
            QueryOptions(limit=limit)
