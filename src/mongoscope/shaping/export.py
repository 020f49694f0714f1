"""
Collection export streams.

Three formats are supported:

- jsonl: one relaxed Extended JSON document per line, streamed from the cursor
- json:  a single JSON array, streamed element by element
- csv:   dotted-path columns; needs the full header, so rows are collected first

Exports are unbounded and unredacted: they see every matching document as
stored. The cursor is closed when the stream finishes or is abandoned.
"""

from __future__ import annotations

import csv
import io
import logging
import os
from collections.abc import AsyncIterator, Mapping
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import quote

from bson import ObjectId

from .sizes import serialize_value

logger = logging.getLogger("mongoscope.shaping.export")


class ExportFormat(str, Enum):
    JSONL = "jsonl"
    JSON = "json"
    CSV = "csv"

    @property
    def media_type(self) -> str:
        return "text/csv" if self is ExportFormat.CSV else "application/json"

    @property
    def extension(self) -> str:
        # Line-delimited exports keep the .json name existing tools expect
        return "csv" if self is ExportFormat.CSV else "json"

    def filename(self, collection_name: str) -> str:
        return f"{collection_name}.{self.extension}"


def content_disposition(collection_name: str, fmt: ExportFormat) -> str:
    """Build an attachment header that survives non-ASCII collection names."""
    quoted = quote(fmt.filename(collection_name))
    return f"attachment; filename=\"{quoted}\"; filename*=UTF-8''{quoted}"


def flatten_document(document: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys; other containers stay whole."""
    flat: dict[str, Any] = {}
    for key, value in document.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping) and value:
            flat.update(flatten_document(value, path))
        else:
            flat[path] = value
    return flat


def _csv_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return value
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return serialize_value(value)


def documents_to_csv(documents: list[Mapping[str, Any]]) -> str:
    """Render documents as CSV with the union of their flattened keys."""
    rows = [flatten_document(doc) for doc in documents]
    header: list[str] = []
    for row in rows:
        for key in row:
            if key not in header:
                header.append(key)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=header, lineterminator=os.linesep)
    writer.writeheader()
    for row in rows:
        writer.writerow({key: _csv_cell(value) for key, value in row.items()})
    return buffer.getvalue()


async def stream_export(cursor: Any, fmt: ExportFormat) -> AsyncIterator[str]:
    """
    Serialize an async cursor in the requested format.

    Args:
        cursor: Async iterable of documents with an async ``close()``
        fmt: Output format

    Yields:
        Text chunks ready to be written to the response
    """
    exported = 0
    try:
        if fmt is ExportFormat.JSONL:
            async for document in cursor:
                exported += 1
                yield serialize_value(document) + os.linesep
        elif fmt is ExportFormat.JSON:
            yield "["
            async for document in cursor:
                prefix = "," if exported else ""
                exported += 1
                yield prefix + serialize_value(document)
            yield "]"
        else:
            documents = [document async for document in cursor]
            exported = len(documents)
            yield documents_to_csv(documents)
    finally:
        await cursor.close()
        logger.info(f"[EXPORT] Wrote {exported} documents as {fmt.value}")
