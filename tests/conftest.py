"""
tests/conftest.py
Shared fixtures: an in-memory record store and an HTTP client wired to it.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config.storage import get_repositories
from main import app
from shared.models.models import UserRole
from shared.store.backends import MemoryStorage
from shared.store.record_store import RecordStore
from shared.store.repositories import Repositories
from tests.factories import make_actor, user_headers


@pytest_asyncio.fixture
async def backend() -> MemoryStorage:
    return MemoryStorage()


@pytest_asyncio.fixture
async def repos(backend: MemoryStorage) -> Repositories:
    return Repositories.from_store(RecordStore(backend, key_prefix="test:"))


@pytest_asyncio.fixture
async def client(repos: Repositories):
    app.dependency_overrides[get_repositories] = lambda: repos
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ── Actors ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def tourist():
    return make_actor("tourist-1", UserRole.TOURIST, name="Mona")


@pytest_asyncio.fixture
async def provider():
    return make_actor("prov-1", UserRole.PROVIDER, name="Karim", company_name="Nile Tours")


@pytest_asyncio.fixture
async def other_provider():
    return make_actor("prov-2", UserRole.PROVIDER, name="Laila", company_name="Desert Trips")


@pytest_asyncio.fixture
async def admin():
    return make_actor("admin-1", UserRole.ADMIN, name="Ops")


@pytest_asyncio.fixture
async def tourist_headers(tourist):
    return user_headers(tourist)


@pytest_asyncio.fixture
async def provider_headers(provider):
    return user_headers(provider)


@pytest_asyncio.fixture
async def admin_headers(admin):
    return user_headers(admin)
