"""Shared pytest fixtures for cartledger tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from cartledger.carts.repository import CartRepository
from cartledger.carts.router import get_cart_service
from cartledger.carts.service import CartService
from cartledger.db.connection import Database
from cartledger.events.memory import InMemoryEventStore
from cartledger.events.store import SqliteEventStore
from cartledger.main import app
from tests.fixtures import FIXED_NOW


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def event_store(db):
    """SqliteEventStore backed by in-memory database."""
    return SqliteEventStore(db)


@pytest.fixture
def memory_store():
    """InMemoryEventStore, the fake with the same contract."""
    return InMemoryEventStore()


@pytest.fixture(params=["sqlite", "memory"])
async def store(request, db):
    """Each store implementation in turn, for contract tests."""
    if request.param == "sqlite":
        return SqliteEventStore(db, page_size=3)
    return InMemoryEventStore()


@pytest.fixture
async def repository(store):
    return CartRepository(store)


@pytest.fixture
async def service(event_store):
    """CartService over SQLite with a frozen clock."""
    return CartService(CartRepository(event_store), clock=lambda: FIXED_NOW)


@pytest.fixture
async def client(service):
    """Async test client with in-memory DB wired into the app."""
    app.dependency_overrides[get_cart_service] = lambda: service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
