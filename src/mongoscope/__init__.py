"""
mongoscope - Browse, filter, export and manage MongoDB collections.

This package provides:
- Query translation from loosely typed request parameters into a validated
  single-pass aggregation plan
- A strict parser for client-supplied shell-syntax queries (never evaluated)
- Pagination windows computed from a server-side count
- Redaction of oversized fields and documents before they leave the process
- Streamed exports as JSON lines, JSON array or CSV

Quick Start:
    ```python
    from mongoscope import CollectionQueryParams, CollectionService, create_client, get_settings

    settings = get_settings()
    client = create_client(settings)
    service = CollectionService.for_collection(client, "shop", "orders", settings)

    view = await service.view(CollectionQueryParams(query='{total: {$gt: 100}}'))
    ```

For API usage:
    ```bash
    uvicorn mongoscope.api.main:app --host 0.0.0.0 --port 8081
    ```
"""

__version__ = "0.1.0"

from .config.settings import Settings, configure_logging, get_settings
from .errors import (
    InvalidBinary,
    InvalidCollectionName,
    InvalidIdentifier,
    InvalidLiteral,
    InvalidPattern,
    InvalidQuery,
    InvalidSort,
    MongoscopeError,
    OperationNotPermitted,
    QueryBuildError,
    QueryExecutionError,
    StoreError,
    StoreUnavailable,
    UnsupportedType,
)
from .query import (
    CollectionQueryParams,
    MatchFilter,
    QueryOptions,
    QueryPlan,
    RawPipelineFilter,
    ValueType,
    build_filter,
    build_query_options,
    build_query_plan,
    coerce_value,
    compute_pagination,
    evaluate_safe_expression,
)
from .service import CollectionService, CollectionView, OperationResult
from .shaping import ExportFormat, PayloadRedactor, RedactedField
from .store import CollectionStore, create_client

# CLI exports (lazy import to avoid typer dependency at import time)
def run_cli():
    """Run the mongoscope CLI."""
    from .cli import run_cli as _run_cli
    return _run_cli()

__all__ = [
    "__version__",
    # Config
    "Settings",
    "get_settings",
    "configure_logging",
    # Errors
    "MongoscopeError",
    "QueryBuildError",
    "InvalidLiteral",
    "InvalidIdentifier",
    "InvalidPattern",
    "InvalidBinary",
    "UnsupportedType",
    "InvalidQuery",
    "InvalidSort",
    "InvalidCollectionName",
    "OperationNotPermitted",
    "StoreError",
    "QueryExecutionError",
    "StoreUnavailable",
    # Query
    "CollectionQueryParams",
    "MatchFilter",
    "RawPipelineFilter",
    "QueryOptions",
    "QueryPlan",
    "ValueType",
    "build_filter",
    "build_query_options",
    "build_query_plan",
    "coerce_value",
    "compute_pagination",
    "evaluate_safe_expression",
    # Service and store
    "CollectionService",
    "CollectionView",
    "OperationResult",
    "CollectionStore",
    "create_client",
    # Shaping
    "ExportFormat",
    "PayloadRedactor",
    "RedactedField",
    # CLI
    "run_cli",
]
