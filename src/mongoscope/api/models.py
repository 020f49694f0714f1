"""
Pydantic models for API request/response.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..query import PageWindow, Pagination
from ..service import CollectionView, OperationResult
from ..shaping import serialize_value, stubs_to_dicts


class CollectionNameRequest(BaseModel):
    """Create or rename request."""

    name: str = Field(
        ...,
        description="Collection name",
    )

    model_config = {"json_schema_extra": {"example": {"name": "orders_2024"}}}


class IndexRequest(BaseModel):
    """Index creation request."""

    keys: str = Field(
        ...,
        min_length=1,
        description="Index key document in shell syntax",
    )

    model_config = {"json_schema_extra": {"example": {"keys": "{customer_id: 1, created_at: -1}"}}}


class PageWindowModel(BaseModel):
    page: int
    skip: int
    exists: bool

    @classmethod
    def from_window(cls, window: PageWindow) -> "PageWindowModel":
        return cls(page=window.page, skip=window.skip, exists=window.exists)


class PaginationModel(BaseModel):
    here: int
    prev: PageWindowModel
    prev2: PageWindowModel
    next: PageWindowModel
    next2: PageWindowModel
    last: int
    has_multiple_pages: bool

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> "PaginationModel":
        return cls(
            here=pagination.here,
            prev=PageWindowModel.from_window(pagination.prev),
            prev2=PageWindowModel.from_window(pagination.prev2),
            next=PageWindowModel.from_window(pagination.next),
            next2=PageWindowModel.from_window(pagination.next2),
            last=pagination.last,
            has_multiple_pages=pagination.has_multiple_pages,
        )


def to_jsonable(value: Any) -> Any:
    """Convert BSON values to relaxed Extended JSON structures."""
    return json.loads(serialize_value(value))


class CollectionViewResponse(BaseModel):
    """One page of a collection plus everything needed to re-render the form."""

    title: str
    items: list[dict[str, Any]]
    columns: list[str]
    count: int
    pagination: PaginationModel
    limit: int
    skip: int
    sort: dict[str, int]
    key: str
    value: str
    type: str
    query: str
    projection: str
    run_aggregate: bool
    default_key: str
    stats: dict[str, Any] = Field(default_factory=dict)
    indexes: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None
    success: str | None = None

    @classmethod
    def from_view(cls, view: CollectionView) -> "CollectionViewResponse":
        return cls(
            title=view.title,
            items=[to_jsonable(stubs_to_dicts(item)) for item in view.items],
            columns=view.columns,
            count=view.count,
            pagination=PaginationModel.from_pagination(view.pagination),
            limit=view.limit,
            skip=view.skip,
            sort=view.sort,
            key=view.key,
            value=view.value,
            type=view.type,
            query=view.query,
            projection=view.projection,
            run_aggregate=view.run_aggregate,
            default_key=view.default_key,
            stats=to_jsonable(view.stats),
            indexes=to_jsonable(view.indexes),
            error=view.error,
            success=view.success,
        )


class OperationResponse(BaseModel):
    """Mutation response carrying the success message."""

    success: str
    count: int | None = None

    @classmethod
    def from_result(cls, result: OperationResult) -> "OperationResponse":
        return cls(success=result.success, count=result.count)


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "degraded", "unhealthy"]
    components: dict[str, str]
    version: str


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: str | None = None
    code: str
