"""Pytest configuration and fixtures."""

import asyncio

import httpx
import pytest
import pytest_asyncio

from atlas_broker.core.session import AtlasSession
from atlas_broker.models.database import InitializeRequest
from atlas_broker.services.database import MongoDBAtlas

TEST_ROLE_STATEMENT = (
    '{"roles": [{"databaseName":"admin","roleName":"readWriteAnyDatabase"}], '
    '"scopes": [{"name": "vault-test-free-cluster", "type": "CLUSTER"}]}'
)

TEST_CONFIG = {
    "public_key": "aspergesme",
    "private_key": "domine",
    "project_id": "test-project",
}


class FakeAtlasClient:
    """Stands in for AtlasClient and records every call in order.

    Each call yields to the event loop between its start and end events so
    overlapping calls would show up as interleaved events.
    """

    base_url = "https://atlas.test/api/atlas/v1.0"

    def __init__(self, events=None):
        self.events = events if events is not None else []
        self.calls = []
        self.closed = False
        self.fail_with = None

    async def _record(self, name, *args):
        self.events.append(("start", name))
        await asyncio.sleep(0.001)
        self.events.append(("end", name))
        self.calls.append((name, *args))
        if self.fail_with is not None:
            raise self.fail_with

    async def create_database_user(self, project_id, user):
        await self._record("create", project_id, user)

    async def update_database_user(self, project_id, username, user, database_name="admin"):
        await self._record("update", project_id, username, user)

    async def delete_database_user(self, project_id, username, database_name="admin"):
        await self._record("delete", project_id, username)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_client():
    """Fake Atlas client shared by the session under test."""
    return FakeAtlasClient()


@pytest.fixture
def atlas_session(fake_client):
    """Session whose client factory hands out the fake client."""
    return AtlasSession(client_factory=lambda config: fake_client)


@pytest.fixture
def database(atlas_session):
    """Uninitialized plugin."""
    return MongoDBAtlas(session=atlas_session)


@pytest_asyncio.fixture
async def initialized_database(database):
    """Plugin initialized with TEST_CONFIG."""
    await database.initialize(InitializeRequest(config=dict(TEST_CONFIG)))
    return database


@pytest.fixture
def test_app(database):
    """FastAPI app wired to the plugin backed by the fake client."""
    from atlas_broker.main import create_app

    return create_app(database=database)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Async client for the plugin API."""
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        timeout=15.0,
    ) as ac:
        yield ac
