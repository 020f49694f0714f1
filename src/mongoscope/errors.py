"""
Error taxonomy for mongoscope.

Build-time errors (QueryBuildError) are raised while turning request
parameters into a query plan and always happen before the store is touched.
Store-time errors (StoreError) wrap driver failures. Both carry a user-facing
message and a stable code that the API layer exposes in ErrorResponse.
"""

from __future__ import annotations


class MongoscopeError(Exception):
    """Base class for every error surfaced to a caller."""

    code = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class QueryBuildError(MongoscopeError):
    """Request parameters could not be turned into a query."""

    code = "invalid_request"
    status_code = 400


class InvalidLiteral(QueryBuildError):
    code = "invalid_literal"


class InvalidIdentifier(QueryBuildError):
    code = "invalid_identifier"


class InvalidPattern(QueryBuildError):
    code = "invalid_pattern"


class InvalidBinary(QueryBuildError):
    code = "invalid_binary"


class UnsupportedType(QueryBuildError):
    code = "unsupported_type"


class InvalidQuery(QueryBuildError):
    code = "invalid_query"


class InvalidSort(QueryBuildError):
    code = "invalid_sort"


class InvalidCollectionName(QueryBuildError):
    code = "invalid_collection_name"


class OperationNotPermitted(MongoscopeError):
    """Operation disabled by the read-only / no-delete / no-export toggles."""

    code = "not_permitted"
    status_code = 403


class StoreError(MongoscopeError):
    """The document store failed while executing a request."""

    code = "store_error"
    status_code = 502


class QueryExecutionError(StoreError):
    code = "query_execution_error"


class StoreUnavailable(StoreError):
    code = "store_unavailable"
    status_code = 503


__all__ = [
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
]
