"""
Pytest configuration and fixtures
Shared test setup for all test modules
"""

import pytest
from typing import AsyncGenerator, Callable, Dict
import httpx
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from secdash.main import app
from secdash.db.base import Base
from secdash.db.session import get_db, get_session_factory
from secdash.api.dependencies import get_http_client
from secdash.core.config import settings
from secdash.core.security import create_access_token
import secdash.db.models  # noqa: F401


@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite per test so concurrent sessions get their own connections"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create clean database for each test"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def fast_rss_batches(monkeypatch):
    monkeypatch.setattr(settings, "RSS_BATCH_DELAY_SECONDS", 0)


@pytest.fixture
def feed_responses() -> Dict[str, Callable]:
    """url -> handler(request) used by the mocked feed transport"""
    return {}


@pytest.fixture
def mock_transport(feed_responses):
    def handler(request: httpx.Request) -> httpx.Response:
        responder = feed_responses.get(str(request.url))
        if responder is None:
            return httpx.Response(404)
        return responder(request)

    return httpx.MockTransport(handler)


@pytest.fixture
async def http_client(mock_transport):
    async with httpx.AsyncClient(transport=mock_transport) as client:
        yield client


@pytest.fixture(scope="function")
async def client(session_factory, http_client) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and outbound HTTP overrides"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_http_client():
        yield http_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_http_client] = override_get_http_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_auth_headers(role: str, user_id: str = "user-1") -> dict:
    access_token = create_access_token(data={"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def admin_headers() -> dict:
    return make_auth_headers("ADMIN", "admin-1")


@pytest.fixture
def analyst_headers() -> dict:
    return make_auth_headers("ANALYST", "analyst-1")


@pytest.fixture
def viewer_headers() -> dict:
    return make_auth_headers("VIEWER", "viewer-1")
