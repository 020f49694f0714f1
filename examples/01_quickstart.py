#!/usr/bin/env python3
"""
mongoscope Quickstart Example
=============================

This example demonstrates the basic usage of mongoscope:
1. Import a few documents into a scratch collection
2. Browse one page with a simple filter and a shell-style query
3. Export the collection as JSON lines

Prerequisites:
    pip install -e .

    # Configure .env with:
    # MONGODB_URI=mongodb://localhost:27017
    # MONGODB_DATABASE=test

Run:
    python examples/01_quickstart.py
"""

import asyncio

# Add src to path for development
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mongoscope import CollectionQueryParams, CollectionService, create_client, get_settings
from mongoscope.shaping import ExportFormat


async def main() -> None:
    """Basic mongoscope usage example."""
    print("=" * 60)
    print("mongoscope Quickstart")
    print("=" * 60)

    settings = get_settings()
    client = create_client(settings)
    service = CollectionService.for_collection(
        client, settings.mongodb_database, "quickstart_orders", settings
    )

    try:
        # 1. Import documents (one Extended JSON document per line)
        print("\n1. Importing documents...")
        result = await service.import_documents(
            "\n".join(
                [
                    '{"item": "notebook", "qty": 5, "status": "active"}',
                    '{"item": "pen", "qty": 40, "status": "active"}',
                    '{"item": "stapler", "qty": 1, "status": "archived"}',
                ]
            )
        )
        print(f"   ✓ {result.success}")

        # 2. Browse with a simple key/value filter
        print("\n2. Browsing status = active...")
        view = await service.view(
            CollectionQueryParams(key="status", value="active", type="S", sort={"qty": "-1"})
        )
        for item in view.items:
            print(f"   {item['item']}: {item['qty']}")
        print(f"   {view.count} match(es), page {view.pagination.here}")

        # 3. Browse with a shell-style query
        print("\n3. Browsing {qty: {$gt: 3}}...")
        view = await service.view(CollectionQueryParams(query="{qty: {$gt: 3}}"))
        print(f"   {view.count} match(es)")

        # 4. Export
        print("\n4. Exporting as JSON lines...")
        chunks = await service.export(CollectionQueryParams(), ExportFormat.JSONL)
        async for chunk in chunks:
            print(f"   {chunk.rstrip()}")
    finally:
        await service.delete(CollectionQueryParams())
        await client.close()

    print("\n" + "=" * 60)
    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())
