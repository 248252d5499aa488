"""
Mini-Blog Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       per-request session dependency.
How:   A Database object owns one engine (and therefore one connection pool)
       plus its session factory. create_app() builds exactly one and stores it
       on app.state; nothing reaches it through a module global. Sessions are
       created per request, committed on success and rolled back on error, so
       every write a request makes lands in a single transaction.

Connection Pooling:
    PostgreSQL (asyncpg): QueuePool sized by DB_POOL_SIZE / DB_MAX_OVERFLOW,
        pre-ping enabled, connections recycled hourly.
    SQLite (aiosqlite):   StaticPool so an in-memory database is shared by
        every session (used by the test suite).
"""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from miniblog.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Shares one metadata object so Alembic and create_all() see every table.
    """
    pass


def _engine_options(settings: Settings) -> dict:
    if settings.database_url.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


class Database:
    """
    One engine + session factory for the lifetime of an application.

    Example:
        database = Database(settings)
        async with database.session() as session:
            ...
        await database.dispose()
    """

    def __init__(self, settings: Settings, engine: Optional[AsyncEngine] = None):
        self.url = settings.database_url
        self.engine: AsyncEngine = engine or create_async_engine(
            settings.database_url,
            echo=settings.log_level == "DEBUG",
            **_engine_options(settings),
        )
        # expire_on_commit=False: response models are built from ORM objects
        # after the dependency has committed.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self) -> None:
        """Create every table known to Base.metadata (development and tests)."""
        # Registers all mappers with the metadata before create_all runs.
        import miniblog.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        """Runs SELECT 1; True when the database answered."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits when the route returns normally, rolls back when anything raises
    (including our own MiniBlogError), and always closes the session so the
    connection goes back to the pool.
    """
    database = get_database(request)
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escapes LIKE wildcards so user input only ever matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
