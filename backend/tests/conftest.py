"""
DevConnector Backend — Test Configuration (conftest.py)
========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Tests run against a throwaway SQLite database (aiosqlite). Tables are
       created fresh for each test and the engine's pool is drained after
       it, so no connection outlives the event loop that opened it.

Fixture Hierarchy:
    ├── db_tables:    empty schema for one test
    ├── db_session:   AsyncSession on that schema
    ├── alice / bob:  persisted users
    ├── make_ctx:     RequestContext factory for service calls
    ├── auth_headers: Bearer header factory for HTTP calls
    └── test_client:  HTTPX AsyncClient bound to the FastAPI app
"""

import os
import tempfile
from typing import AsyncGenerator

# Override settings for testing BEFORE any application import reads them
_tmp_dir = tempfile.mkdtemp(prefix="devconnector_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir}/test.db"
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["WRITE_RETRY_INITIAL_WAIT"] = "0"
os.environ["WRITE_RETRY_MAX_WAIT"] = "0"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from devconnector.database import Base, async_session_factory, engine
from devconnector.models.post import Post  # noqa: F401
from devconnector.models.user import User
from devconnector.security import RequestContext, create_access_token


@pytest_asyncio.fixture
async def db_tables() -> AsyncGenerator[None, None]:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_tables):
    async with async_session_factory() as session:
        yield session


async def _add_user(name: str, email: str) -> User:
    async with async_session_factory() as session:
        user = User(name=name, email=email, avatar=f"//www.gravatar.com/avatar/{name.lower()}")
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def alice(db_tables) -> User:
    return await _add_user("Alice", "alice@example.com")


@pytest_asyncio.fixture
async def bob(db_tables) -> User:
    return await _add_user("Bob", "bob@example.com")


@pytest.fixture
def make_ctx():
    """Builds the caller context PostService expects, for a given user."""
    def _make(user) -> RequestContext:
        return RequestContext(user_id=user.id, request_id="test")
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers


@pytest_asyncio.fixture
async def test_client(db_tables):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    The app lifespan is not run here; db_tables provides the schema.
    """
    from devconnector.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
