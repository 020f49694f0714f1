"""
FastAPI application for mongoscope.

Endpoints:
- Collection view with filters, sort, projection and pagination
- Streamed exports (JSON lines, JSON array, CSV)
- Collection and index management, document import
- Health checks
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from .. import __version__
from ..config.settings import get_settings
from ..errors import InvalidLiteral, MongoscopeError
from ..query import CollectionQueryParams
from ..service import CollectionService
from ..shaping import ExportFormat, content_disposition
from ..store import create_client
from .models import (
    CollectionNameRequest,
    CollectionViewResponse,
    ErrorResponse,
    HealthResponse,
    IndexRequest,
    OperationResponse,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger("mongoscope.api")

ServiceFactory = Callable[[str, str], CollectionService]

IMPORT_MEDIA_TYPES = {"application/json", "application/x-ndjson", "text/plain"}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()

    # Startup: one client per process; the driver pools connections
    app.state.client = create_client(settings)
    logger.info("[API] MongoDB client created")

    yield

    # Shutdown: Cleanup
    await app.state.client.close()
    app.state.client = None


def get_service_factory(request: Request) -> ServiceFactory:
    """Return a factory building a CollectionService for (database, collection)."""
    client = getattr(request.app.state, "client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="MongoDB client not initialized")
    settings = get_settings()

    def factory(database: str, collection: str) -> CollectionService:
        return CollectionService.for_collection(client, database, collection, settings)

    return factory


def params_from_request(request: Request) -> CollectionQueryParams:
    """
    Read browse parameters from the query string.

    Sort entries arrive as ``sort[field]=direction`` and keep their order.
    """
    query = request.query_params
    sort = {
        name[len("sort[") : -1]: value
        for name, value in query.multi_items()
        if name.startswith("sort[") and name.endswith("]") and len(name) > len("sort[]")
    }
    return CollectionQueryParams(
        key=query.get("key", ""),
        value=query.get("value", ""),
        type=query.get("type", ""),
        query=query.get("query", ""),
        projection=query.get("projection", ""),
        skip=query.get("skip", 0),
        run_aggregate=query.get("runAggregate", False),
        sort=sort,
    )


async def handle_mongoscope_error(request: Request, exc: MongoscopeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"[API] {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"[API] {request.method} {request.url.path} rejected: {exc.message}")
    body = ErrorResponse(error=exc.message, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="mongoscope API",
        description="Browse, filter, export and manage MongoDB collections",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MongoscopeError, handle_mongoscope_error)

    # Register routes
    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """Register all API routes."""

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
    )
    async def health_check(request: Request) -> HealthResponse:
        """Check system health."""
        components: dict[str, str] = {"api": "healthy"}

        client = getattr(request.app.state, "client", None)
        try:
            if client is None:
                raise RuntimeError("client not initialized")
            await client.admin.command("ping")
            components["mongodb"] = "healthy"
        except Exception as e:
            logger.warning(f"[API] MongoDB ping failed: {e}")
            components["mongodb"] = "unhealthy"

        overall = "healthy" if all(v == "healthy" for v in components.values()) else "degraded"

        return HealthResponse(
            status=overall,
            components=components,
            version=__version__,
        )

    @app.get("/ready", tags=["health"])
    async def readiness_check(request: Request) -> dict:
        """Kubernetes readiness probe."""
        return {"ready": getattr(request.app.state, "client", None) is not None}

    @app.get(
        "/v1/db/{database}/{collection}",
        response_model=CollectionViewResponse,
        responses=ERROR_RESPONSES,
        tags=["collections"],
    )
    async def view_collection(
        database: str,
        collection: str,
        request: Request,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> CollectionViewResponse:
        """
        View one page of a collection.

        Filtering:
        - **key/value/type**: simple equality filter; type is one of J, N, O, R, U, S
        - **query**: shell-style query document, or a pipeline with runAggregate=on
        - **projection**: shell-style projection document
        - **sort[field]**: 1 or -1, applied in the given order
        """
        service = factory(database, collection)
        view = await service.view(params_from_request(request))
        return CollectionViewResponse.from_view(view)

    @app.get(
        "/v1/db/{database}/{collection}/export",
        responses=ERROR_RESPONSES,
        tags=["collections"],
    )
    async def export_collection(
        database: str,
        collection: str,
        request: Request,
        format: ExportFormat = Query(default=ExportFormat.JSONL),
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> StreamingResponse:
        """Stream every matching document (no pagination, no redaction)."""
        service = factory(database, collection)
        chunks = await service.export(params_from_request(request), format)
        return StreamingResponse(
            chunks,
            media_type=format.media_type,
            headers={"Content-Disposition": content_disposition(collection, format)},
        )

    @app.post(
        "/v1/db/{database}",
        response_model=OperationResponse,
        responses=ERROR_RESPONSES,
        tags=["collections"],
    )
    async def create_collection(
        database: str,
        body: CollectionNameRequest,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> OperationResponse:
        """Create a collection."""
        result = await factory(database, body.name).create_collection()
        return OperationResponse.from_result(result)

    @app.put(
        "/v1/db/{database}/{collection}",
        response_model=OperationResponse,
        responses=ERROR_RESPONSES,
        tags=["collections"],
    )
    async def rename_collection(
        database: str,
        collection: str,
        body: CollectionNameRequest,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> OperationResponse:
        """Rename a collection."""
        result = await factory(database, collection).rename_collection(body.name)
        return OperationResponse.from_result(result)

    @app.post(
        "/v1/db/{database}/{collection}/compact",
        response_model=OperationResponse,
        responses=ERROR_RESPONSES,
        tags=["collections"],
    )
    async def compact_collection(
        database: str,
        collection: str,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> OperationResponse:
        """Compact a collection."""
        result = await factory(database, collection).compact()
        return OperationResponse.from_result(result)

    @app.delete(
        "/v1/db/{database}/{collection}",
        response_model=OperationResponse,
        responses=ERROR_RESPONSES,
        tags=["collections"],
    )
    async def delete_collection(
        database: str,
        collection: str,
        request: Request,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> OperationResponse:
        """Delete the documents matching the filter, or drop the collection without one."""
        result = await factory(database, collection).delete(params_from_request(request))
        return OperationResponse.from_result(result)

    @app.post(
        "/v1/db/{database}/{collection}/indexes",
        response_model=OperationResponse,
        responses=ERROR_RESPONSES,
        tags=["indexes"],
    )
    async def add_index(
        database: str,
        collection: str,
        body: IndexRequest,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> OperationResponse:
        """Create an index from a key document."""
        result = await factory(database, collection).add_index(body.keys)
        return OperationResponse.from_result(result)

    @app.delete(
        "/v1/db/{database}/{collection}/indexes/{name}",
        response_model=OperationResponse,
        responses=ERROR_RESPONSES,
        tags=["indexes"],
    )
    async def drop_index(
        database: str,
        collection: str,
        name: str,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> OperationResponse:
        """Drop an index by name."""
        result = await factory(database, collection).drop_index(name)
        return OperationResponse.from_result(result)

    @app.post(
        "/v1/db/{database}/{collection}/import",
        response_model=OperationResponse,
        responses=ERROR_RESPONSES,
        tags=["collections"],
    )
    async def import_documents(
        database: str,
        collection: str,
        request: Request,
        factory: ServiceFactory = Depends(get_service_factory),
    ) -> OperationResponse:
        """Insert documents from an Extended JSON lines body."""
        media_type = request.headers.get("content-type", "").split(";")[0].strip()
        if media_type not in IMPORT_MEDIA_TYPES:
            raise InvalidLiteral("Bad file")
        try:
            text = (await request.body()).decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidLiteral("Bad file content") from None
        result = await factory(database, collection).import_documents(text)
        return OperationResponse.from_result(result)


# Create default app instance
app = create_app()
