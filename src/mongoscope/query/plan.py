"""
Query plan assembler.

Every collection view runs as one aggregation:

    [
        {"$facet": {"data": [<match | raw pipeline>, <$sort>, <$project>]}},
        {"$project": {
            "metadata.total": {"$size": "$data"},
            "data": {"$slice": ["$data", skip, limit]},
        }},
    ]

The page and the total come out of the same pass, so they always agree with
each other even when concurrent writes make both slightly stale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .filters import FilterSpec, MatchFilter, RawPipelineFilter
from .options import QueryOptions


@dataclass(frozen=True)
class QueryPlan:
    """Assembled stages for one view request."""

    leading_stages: list[dict[str, Any]] = field(default_factory=list)
    sort_stage: dict[str, Any] | None = None
    projection_stage: dict[str, Any] | None = None
    skip: int = 0
    limit: int = 10

    @property
    def inner_stages(self) -> list[dict[str, Any]]:
        """Stages applied to the collection before counting and slicing."""
        stages = list(self.leading_stages)
        if self.sort_stage is not None:
            stages.append(self.sort_stage)
        if self.projection_stage is not None:
            stages.append(self.projection_stage)
        return stages

    def to_pipeline(self) -> list[dict[str, Any]]:
        return [
            {"$facet": {"data": self.inner_stages}},
            {
                "$project": {
                    "metadata.total": {"$size": "$data"},
                    "data": {"$slice": ["$data", self.skip, self.limit]},
                }
            },
        ]


def build_query_plan(filter_spec: FilterSpec, options: QueryOptions) -> QueryPlan:
    """
    Combine filter and options into a single-pass plan.

    Args:
        filter_spec: MatchFilter or RawPipelineFilter from build_filter
        options: Sort, projection and window from build_query_options

    Returns:
        QueryPlan ready for ``to_pipeline()``
    """
    if isinstance(filter_spec, RawPipelineFilter):
        leading = list(filter_spec.stages)
    elif isinstance(filter_spec, MatchFilter) and not filter_spec.is_empty:
        leading = [{"$match": filter_spec.document}]
    else:
        leading = []

    return QueryPlan(
        leading_stages=leading,
        sort_stage={"$sort": dict(options.sort)} if options.sort else None,
        projection_stage={"$project": dict(options.projection)} if options.projection else None,
        skip=options.skip,
        limit=options.limit,
    )
