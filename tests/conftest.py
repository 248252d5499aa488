"""
Mini-Blog Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the whole suite.
How:   Every test gets its own in-memory SQLite database (aiosqlite +
       StaticPool), so tests never see each other's rows.

Fixture Hierarchy (all function-scoped):
    test_settings ─┬─ database ─┬─ db_session      service-level tests
                   │            └─ app ── client     HTTP-level tests
                   └──────────────┘          └── signup (factory)

    Service tests use db_session; HTTP tests use client. A single test does
    not use both, since they would share one SQLite connection. HTTP tests
    that simulate a concurrent writer open a short session from `database`
    and commit it before the request continues.
"""

import os
from typing import AsyncGenerator, Awaitable, Callable, Dict, Tuple

# Must be set before anything imports miniblog.config
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production-use-0123456789"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DB_CREATE_TABLES"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from miniblog.config import Settings
from miniblog.database import Database
from miniblog.main import create_app
from miniblog.models.user import User

API = "/api"
DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite://",
        jwt_secret="test-secret-not-for-production-use-0123456789",
        bcrypt_rounds=4,
        db_create_tables=False,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def database(test_settings) -> AsyncGenerator[Database, None]:
    db = Database(test_settings)
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as session:
        yield session


@pytest.fixture
def app(test_settings, database):
    return create_app(settings=test_settings, database=database)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def signup(client) -> Callable[..., Awaitable[Tuple[Dict, Dict[str, str]]]]:
    """
    Factory: registers a user over HTTP.

    Usage:
        user, headers = await signup("alice")
        await client.post("/api/posts", json={...}, headers=headers)
    """

    async def _signup(username: str, password: str = DEFAULT_PASSWORD):
        response = await client.post(
            f"{API}/auth/signup",
            json={
                "username": username,
                "email": f"{username.lower()}@example.com",
                "password": password,
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _signup


@pytest.fixture
def make_user(db_session):
    """Factory: inserts a user row directly (no password hashing)."""

    async def _make_user(username: str) -> User:
        user = User(
            username=username,
            email=f"{username.lower()}@example.com",
            password_hash="not-a-real-hash",
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user
