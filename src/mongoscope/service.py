"""
Collection service: the operations behind every collection endpoint.

Each call is request scoped. Query building happens first and raises
QueryBuildError before any store access; the store call is the only await
that reaches MongoDB.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from bson import json_util
from bson.errors import BSONError

from .errors import (
    InvalidCollectionName,
    InvalidLiteral,
    InvalidQuery,
    OperationNotPermitted,
)
from .query import (
    CollectionQueryParams,
    MatchFilter,
    Pagination,
    build_filter,
    build_query_options,
    build_query_plan,
    build_sort,
    compute_pagination,
    evaluate_safe_expression,
)
from .shaping import ExportFormat, PayloadRedactor, stream_export
from .store import CollectionStore, translate_errors

if TYPE_CHECKING:
    from pymongo import AsyncMongoClient

    from .config.settings import Settings

logger = logging.getLogger("mongoscope.service")

# Must start with a letter, underscore, hyphen or slash; then word chars, dots, hyphens, slashes
COLLECTION_NAME_RE = re.compile(r"[/A-Z_a-z-][\w./-]*")


@dataclass
class CollectionView:
    """Everything a collection page needs to render."""

    title: str
    items: list[dict[str, Any]]
    columns: list[str]
    count: int
    pagination: Pagination
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
    stats: dict[str, Any] = field(default_factory=dict)
    indexes: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    success: str | None = None


@dataclass
class OperationResult:
    """Outcome of a mutating operation."""

    success: str
    count: int | None = None


def validate_collection_name(name: str | None) -> str:
    if not name:
        raise InvalidCollectionName("You forgot to enter a collection name!")
    if not COLLECTION_NAME_RE.fullmatch(name):
        raise InvalidCollectionName("That collection name is invalid.")
    return name


def collect_columns(documents: list[dict[str, Any]]) -> list[str]:
    """Union of keys across documents, in first-seen order."""
    columns: dict[str, None] = {}
    for document in documents:
        columns.update(dict.fromkeys(document))
    return list(columns)


class CollectionService:
    """
    Browse, export and mutate one collection.

    Example:
        ```python
        service = CollectionService.for_collection(client, "shop", "orders", settings)
        view = await service.view(CollectionQueryParams(key="status", value="paid", type="S"))
        print(view.count, view.pagination.last)
        ```
    """

    def __init__(self, store: CollectionStore, settings: "Settings", database_name: str = ""):
        self.store = store
        self.settings = settings
        self.database_name = database_name or getattr(store.database, "name", "")
        self.redactor = PayloadRedactor(
            max_field_size=settings.max_prop_size,
            max_document_size=settings.max_row_size,
        )

    @classmethod
    def for_collection(
        cls,
        client: "AsyncMongoClient",
        database: str,
        collection: str,
        settings: "Settings",
    ) -> "CollectionService":
        return cls(CollectionStore(client[database], collection), settings, database)

    @property
    def collection_name(self) -> str:
        return self.store.name

    def _require_writable(self) -> None:
        if self.settings.read_only:
            raise OperationNotPermitted("Error: read_only is set to true")

    def _require_deletable(self) -> None:
        self._require_writable()
        if self.settings.no_delete:
            raise OperationNotPermitted("Error: no_delete is set to true")

    def _match_document(self, params: CollectionQueryParams) -> dict[str, Any]:
        """Filter document for find and delete; raw pipelines only run in views."""
        filter_spec = build_filter(params, allow_pipeline=False)
        if not isinstance(filter_spec, MatchFilter):
            raise InvalidQuery("Pipeline queries are only supported when viewing")
        return filter_spec.document

    # Reads

    async def view(self, params: CollectionQueryParams) -> CollectionView:
        """Build, run and shape one page of the collection."""
        options = build_query_options(params, self.settings.documents_per_page)
        filter_spec = build_filter(params)
        plan = build_query_plan(filter_spec, options)

        logger.info(
            f"[VIEW] {self.database_name}.{self.collection_name}: "
            f"stages={len(plan.inner_stages)}, skip={options.skip}, limit={options.limit}"
        )
        page = await self.store.aggregate_page(plan)
        stats = await self.store.stats()
        indexes = await self.store.indexes()

        index_sizes = stats.get("indexSizes", {})
        for index in indexes:
            index["size"] = index_sizes.get(index["name"])

        items = [self.redactor.redact(document) for document in page.data]

        error = None
        if options.projection_ignored:
            error = "Projection entered is not valid, showing all fields"

        return CollectionView(
            title=f"Viewing Collection: {self.collection_name}",
            items=items,
            columns=collect_columns(items),
            count=page.total,
            pagination=compute_pagination(options.skip, options.limit, page.total),
            limit=options.limit,
            skip=options.skip,
            sort=options.sort,
            key=params.key,
            value=params.value,
            type=params.type,
            query=params.query,
            projection=params.projection,
            run_aggregate=params.run_aggregate,
            default_key=self.settings.default_key_for(self.database_name, self.collection_name),
            stats=stats,
            indexes=indexes,
            error=error,
        )

    async def export(self, params: CollectionQueryParams, fmt: ExportFormat) -> AsyncIterator[str]:
        """
        Prepare a full, unredacted export of the matching documents.

        Filter and sort are validated here, before the stream starts, so a bad
        request fails with a normal error response instead of a truncated file.
        """
        if self.settings.no_export:
            raise OperationNotPermitted("Error: no_export is set to true")
        query = self._match_document(params)
        sort = build_sort(params.sort)
        cursor = self.store.find_cursor(query, sort)
        logger.info(f"[EXPORT] {self.database_name}.{self.collection_name} as {fmt.value}")

        async def chunks() -> AsyncIterator[str]:
            with translate_errors("export"):
                async for chunk in stream_export(cursor, fmt):
                    yield chunk

        return chunks()

    # Mutations

    async def create_collection(self) -> OperationResult:
        self._require_writable()
        name = validate_collection_name(self.collection_name)
        await self.store.create_collection(name)
        logger.info(f"[MUTATE] Created {self.database_name}.{name}")
        return OperationResult(success="Collection created!")

    async def rename_collection(self, new_name: str | None) -> OperationResult:
        self._require_writable()
        name = validate_collection_name(new_name)
        await self.store.rename(name)
        logger.info(f"[MUTATE] Renamed {self.collection_name} -> {name}")
        return OperationResult(success="Collection renamed!")

    async def compact(self) -> OperationResult:
        """Run the server's ``compact`` command on the collection."""
        self._require_writable()
        await self.store.compact()
        logger.info(f"[MUTATE] Compacted {self.database_name}.{self.collection_name}")
        return OperationResult(success="Collection compacted!")

    async def delete(self, params: CollectionQueryParams) -> OperationResult:
        """Delete matching documents, or drop the collection when no filter is given."""
        self._require_deletable()
        query = self._match_document(params)
        if query:
            deleted = await self.store.delete_many(query)
            return OperationResult(
                success=f'{deleted} documents deleted from "{self.collection_name}"',
                count=deleted,
            )
        await self.store.drop()
        logger.info(f"[MUTATE] Dropped {self.database_name}.{self.collection_name}")
        return OperationResult(success=f'Collection "{self.collection_name}" deleted!')

    async def add_index(self, text: str | None) -> OperationResult:
        self._require_writable()
        if not text:
            raise InvalidQuery("You forgot to enter an index!")
        keys = evaluate_safe_expression(text)
        if not isinstance(keys, dict) or not keys:
            raise InvalidQuery("Index keys are not valid!")
        name = await self.store.create_index(keys)
        return OperationResult(success=f"Index {name} created!")

    async def drop_index(self, name: str | None) -> OperationResult:
        if not name:
            raise InvalidQuery("Error: missing name parameter")
        self._require_deletable()
        await self.store.drop_index(name)
        return OperationResult(success="Index deleted!")

    async def import_documents(self, text: str) -> OperationResult:
        """Insert documents from Extended JSON lines (each a document or an array)."""
        self._require_writable()
        documents: list[dict[str, Any]] = []
        for number, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                parsed = json_util.loads(line)
            except (ValueError, TypeError, ArithmeticError, RecursionError, BSONError):
                raise InvalidLiteral(f"Bad file content on line {number}") from None
            items = parsed if isinstance(parsed, list) else [parsed]
            if not all(isinstance(item, dict) for item in items):
                raise InvalidLiteral(f"Bad file content on line {number}")
            documents.extend(items)
        if not documents:
            raise InvalidLiteral("No documents to import")
        inserted = await self.store.insert_many(documents)
        return OperationResult(success=f"{inserted} document(s) inserted", count=inserted)
