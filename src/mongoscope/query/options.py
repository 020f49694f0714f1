"""
Sort and projection builders.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import InvalidSort
from .params import CollectionQueryParams
from .safe_expression import evaluate_safe_expression

SORT_DIRECTIONS = (1, -1)


@dataclass(frozen=True)
class QueryOptions:
    """Sort, window and projection for one collection view.

    ``limit`` always comes from settings, never from the client.
    """

    limit: int
    skip: int = 0
    sort: dict[str, int] = field(default_factory=dict)
    projection: dict[str, Any] = field(default_factory=dict)
    projection_ignored: bool = False

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ValueError("limit must be positive")


def build_sort(entries: Mapping[str, str | int]) -> dict[str, int]:
    """
    Parse ``{field: direction}`` entries, keeping their order.

    Raises:
        InvalidSort: a direction is not 1 or -1
    """
    sort: dict[str, int] = {}
    for field_path, token in entries.items():
        try:
            direction = int(str(token).strip())
        except ValueError:
            raise InvalidSort(f'Sort direction for "{field_path}" must be 1 or -1') from None
        if direction not in SORT_DIRECTIONS:
            raise InvalidSort(f'Sort direction for "{field_path}" must be 1 or -1')
        sort[field_path] = direction
    return sort


def _parse_projection(text: str) -> tuple[dict[str, Any], bool]:
    if not text.strip():
        return {}, False
    parsed = evaluate_safe_expression(text)
    if isinstance(parsed, Mapping):
        return dict(parsed), False
    return {}, True


def build_projection(text: str) -> dict[str, Any]:
    """Parse projection text; anything unparseable means all fields."""
    projection, _ = _parse_projection(text)
    return projection


def build_query_options(
    params: CollectionQueryParams,
    documents_per_page: int,
) -> QueryOptions:
    projection, ignored = _parse_projection(params.projection)
    return QueryOptions(
        limit=documents_per_page,
        skip=params.skip,
        sort=build_sort(params.sort),
        projection=projection,
        projection_ignored=ignored,
    )
