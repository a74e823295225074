"""Shared pytest fixtures for hosttree tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from hosttree.assets.router import get_asset_service
from hosttree.assets.service import AssetService
from hosttree.db.connection import Database
from hosttree.events.projector import StateProjector
from hosttree.events.store import EventStore
from hosttree.main import app
from hosttree.ordering.notifications import ChangeNotifier


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def event_store(db):
    """EventStore backed by in-memory database."""
    return EventStore(db)


@pytest.fixture
async def projector(db):
    """StateProjector backed by in-memory database."""
    return StateProjector(db)


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
async def service(db, notifier):
    """AssetService over the in-memory database."""
    return AssetService(db, notifier=notifier)


@pytest.fixture
async def client(service):
    """Async test client with in-memory DB wired into the app."""
    app.dependency_overrides[get_asset_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
