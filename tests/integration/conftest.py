"""
Integration test configuration.

Provides fixtures for integration tests that require a MongoDB connection.
"""

import os
import uuid

import pytest
import pytest_asyncio

from mongoscope.config.settings import Settings
from mongoscope.service import CollectionService
from mongoscope.store import create_client


@pytest.fixture
def skip_if_no_mongodb():
    """Skip test if MongoDB connection not available."""
    if not os.getenv("MONGODB_URI"):
        pytest.skip("MONGODB_URI not set - skipping integration test")


@pytest.fixture
def integration_settings(skip_if_no_mongodb) -> Settings:
    return Settings(_env_file=None, mongodb_uri=os.environ["MONGODB_URI"], documents_per_page=2)


@pytest_asyncio.fixture
async def service(integration_settings):
    """
    CollectionService over a throwaway collection.

    The collection is dropped after the test.
    """
    client = create_client(integration_settings)
    database = os.getenv("MONGODB_DATABASE", "mongoscope_test")
    name = f"test_{uuid.uuid4().hex[:12]}"
    yield CollectionService.for_collection(client, database, name, integration_settings)
    await client[database].drop_collection(name)
    await client.close()
