"""
Query translation for mongoscope.

Request parameters flow through four builders, leaves first:

1. Type coercion - typed values for simple key/value filters
2. Safe filter builder - MatchFilter or RawPipelineFilter
3. Sort/projection builder - QueryOptions
4. Plan assembler - single-pass $facet pipeline with count and page

Client text is only ever parsed by the safe expression evaluator, never
executed.
"""

from .coercion import ValueType, coerce_value
from .filters import FilterSpec, MatchFilter, RawPipelineFilter, build_filter
from .options import QueryOptions, build_projection, build_query_options, build_sort
from .pagination import PageWindow, Pagination, compute_pagination
from .params import CollectionQueryParams
from .plan import QueryPlan, build_query_plan
from .safe_expression import evaluate_safe_expression

__all__ = [
    # Coercion
    "ValueType",
    "coerce_value",
    # Filters
    "FilterSpec",
    "MatchFilter",
    "RawPipelineFilter",
    "build_filter",
    "evaluate_safe_expression",
    # Options
    "CollectionQueryParams",
    "QueryOptions",
    "build_sort",
    "build_projection",
    "build_query_options",
    # Plan
    "QueryPlan",
    "build_query_plan",
    # Pagination
    "PageWindow",
    "Pagination",
    "compute_pagination",
]
