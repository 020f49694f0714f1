"""
Safe filter builder.

A request selects documents in exactly one of three ways:

1. Simple filter: ``key`` + ``value`` (+ ``type``) -> ``{key: coerced value}``
2. Textual query: ``query`` parsed by the safe expression evaluator
3. Nothing: empty filter, matches every document

A textual query that parses to a list is a raw aggregation pipeline. It is
only honored when the caller opts in with ``run_aggregate``; the result is
then a ``RawPipelineFilter`` instead of a ``MatchFilter`` so downstream code
never has to guess from the value's shape.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from ..errors import InvalidQuery
from .coercion import coerce_value
from .params import CollectionQueryParams
from .safe_expression import evaluate_safe_expression, find_forbidden_operator

logger = logging.getLogger("mongoscope.query.filters")


@dataclass(frozen=True)
class MatchFilter:
    """A single match document; empty means match everything."""

    document: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.document


@dataclass(frozen=True)
class RawPipelineFilter:
    """Caller-authored pipeline stages, used verbatim (opt-in only)."""

    stages: list[dict[str, Any]]


FilterSpec = Union[MatchFilter, RawPipelineFilter]


def build_filter(
    params: CollectionQueryParams,
    allow_pipeline: bool = True,
) -> FilterSpec:
    """
    Build the filter for a request.

    Args:
        params: Browse parameters from the request
        allow_pipeline: Whether the caller can run raw pipelines at all
            (exports and deletes cannot)

    Returns:
        MatchFilter or RawPipelineFilter

    Raises:
        QueryBuildError subclasses from coercion, or InvalidQuery when the
        textual query is rejected or either path uses a forbidden operator
    """
    if params.has_simple_filter:
        value = coerce_value(params.type, params.value)
        forbidden = find_forbidden_operator({params.key: value})
        if forbidden is not None:
            logger.info(f"[FILTER] Rejected simple filter using {forbidden}")
            raise InvalidQuery(f"Operator {forbidden} is not allowed")
        return MatchFilter({params.key: value})

    if params.query:
        parsed = evaluate_safe_expression(params.query)
        if parsed is None:
            logger.info("[FILTER] Rejected textual query")
            raise InvalidQuery("Query entered is not valid")
        if isinstance(parsed, Mapping):
            return MatchFilter(dict(parsed))
        if isinstance(parsed, list):
            if not (params.run_aggregate and allow_pipeline):
                raise InvalidQuery(
                    "Pipeline queries require the run aggregate option"
                )
            if not all(isinstance(stage, Mapping) for stage in parsed):
                raise InvalidQuery("Every pipeline stage must be a document")
            return RawPipelineFilter([dict(stage) for stage in parsed])
        raise InvalidQuery("Query must be a document or a pipeline")

    return MatchFilter()
