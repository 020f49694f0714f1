"""
Request parameters accepted by collection views and exports.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class CollectionQueryParams(BaseModel):
    """Loosely typed browse parameters, exactly as a client sends them."""

    key: str = Field(default="", description="Field path for a simple filter")
    value: str = Field(default="", description="Raw value for a simple filter")
    type: str = Field(default="", description="Type tag for value (J, N, O, R, U, S)")
    query: str = Field(default="", description="Shell-style query or pipeline text")
    projection: str = Field(default="", description="Shell-style projection text")
    sort: dict[str, str] = Field(
        default_factory=dict,
        description="Ordered {field: direction} entries",
    )
    skip: int = Field(default=0, ge=0, description="Offset of the first document")
    run_aggregate: bool = Field(
        default=False,
        description="Treat a list-shaped query as a raw aggregation pipeline",
    )

    @field_validator("skip", mode="before")
    @classmethod
    def _lenient_skip(cls, value: Any) -> int:
        """Unparseable or negative offsets fall back to the first page."""
        try:
            skip = int(str(value).strip())
        except (TypeError, ValueError):
            return 0
        return max(skip, 0)

    @field_validator("sort", mode="before")
    @classmethod
    def _stringify_sort(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): str(v) for k, v in value.items()}
        return value

    @field_validator("run_aggregate", mode="before")
    @classmethod
    def _checkbox(cls, value: Any) -> bool:
        # HTML checkboxes submit "on"
        if isinstance(value, str):
            return value.strip().lower() in {"on", "true", "1", "yes"}
        return bool(value)

    @property
    def has_simple_filter(self) -> bool:
        return bool(self.key and self.value)
