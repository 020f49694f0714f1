"""Tests for export streams."""

import csv
import io
import json

import pytest
from bson import ObjectId

from mongoscope.shaping import ExportFormat, content_disposition, documents_to_csv, stream_export


async def collect(chunks) -> str:
    return "".join([chunk async for chunk in chunks])


class TestExportFormat:
    def test_media_types(self) -> None:
        assert ExportFormat.CSV.media_type == "text/csv"
        assert ExportFormat.JSONL.media_type == "application/json"

    def test_filenames(self) -> None:
        assert ExportFormat.JSONL.filename("orders") == "orders.json"
        assert ExportFormat.CSV.filename("orders") == "orders.csv"

    def test_content_disposition_quotes_name(self) -> None:
        header = content_disposition("my coll", ExportFormat.JSON)
        assert header == "attachment; filename=\"my%20coll.json\"; filename*=UTF-8''my%20coll.json"


class TestStreamExport:
    @pytest.mark.asyncio
    async def test_jsonl_one_document_per_line(self, cursor_factory) -> None:
        oid = ObjectId("5f1d7c0e9b1e8a3c4d5e6f70")
        documents = [{"_id": oid, "a": "x"}, {"_id": 2}, {"_id": 3, "n": [1, 2]}]
        cursor = cursor_factory(documents)

        text = await collect(stream_export(cursor, ExportFormat.JSONL))
        lines = text.splitlines()

        assert len(lines) == 3
        assert [json.loads(line) for line in lines] == [
            {"_id": {"$oid": str(oid)}, "a": "x"},
            {"_id": 2},
            {"_id": 3, "n": [1, 2]},
        ]
        assert cursor.closed

    @pytest.mark.asyncio
    async def test_json_array(self, cursor_factory) -> None:
        cursor = cursor_factory([{"a": 1}, {"a": 2}])
        text = await collect(stream_export(cursor, ExportFormat.JSON))
        assert json.loads(text) == [{"a": 1}, {"a": 2}]
        assert cursor.closed

    @pytest.mark.asyncio
    async def test_json_array_empty(self, cursor_factory) -> None:
        text = await collect(stream_export(cursor_factory([]), ExportFormat.JSON))
        assert json.loads(text) == []

    @pytest.mark.asyncio
    async def test_csv(self, cursor_factory) -> None:
        cursor = cursor_factory([{"_id": 1, "a": {"b": 2}}, {"_id": 2, "c": "z"}])
        text = await collect(stream_export(cursor, ExportFormat.CSV))
        rows = list(csv.reader(io.StringIO(text)))

        assert rows == [["_id", "a.b", "c"], ["1", "2", ""], ["2", "", "z"]]
        assert cursor.closed

    @pytest.mark.asyncio
    async def test_cursor_closed_when_abandoned(self, cursor_factory) -> None:
        cursor = cursor_factory([{"a": 1}, {"a": 2}])
        chunks = stream_export(cursor, ExportFormat.JSONL)

        await chunks.__anext__()
        await chunks.aclose()

        assert cursor.closed


class TestDocumentsToCsv:
    def test_cells(self) -> None:
        oid = ObjectId("5f1d7c0e9b1e8a3c4d5e6f70")
        text = documents_to_csv([{"_id": oid, "ok": True, "none": None, "tags": ["a", "b"], "empty": {}}])
        rows = list(csv.reader(io.StringIO(text)))

        assert rows[0] == ["_id", "ok", "none", "tags", "empty"]
        assert rows[1] == [str(oid), "true", "", '["a", "b"]', "{}"]
