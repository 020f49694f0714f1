"""
mongoscope FastAPI Application.

REST API over the collection service.
"""

from .main import app, create_app
from .models import (
    CollectionNameRequest,
    CollectionViewResponse,
    ErrorResponse,
    HealthResponse,
    IndexRequest,
    OperationResponse,
)

__all__ = [
    "app",
    "create_app",
    "CollectionNameRequest",
    "CollectionViewResponse",
    "ErrorResponse",
    "HealthResponse",
    "IndexRequest",
    "OperationResponse",
]
