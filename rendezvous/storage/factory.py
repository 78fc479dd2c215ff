"""
Storage Factory

Environment-based configuration and factory for the profile store.

Supported backends:
- memory: In-memory storage (development/testing)
- sqlite: SQLite with aiosqlite (single-node production)
- postgresql: PostgreSQL with asyncpg
- mysql: MySQL with aiomysql

Usage:
    # From environment
    profiles = await create_profile_store(settings_from_env())

    # From settings
    settings = StorageSettings(database_url="postgresql+asyncpg://...")
    profiles = await create_profile_store(settings)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rendezvous.storage.memory import InMemoryProfileStore
from rendezvous.storage.models import Base
from rendezvous.storage.ports import ProfileStore
from rendezvous.storage.sqlalchemy import SqlAlchemyProfileStore

logger = logging.getLogger(__name__)


class StorageBackend(str, Enum):
    """Supported storage backends."""
    MEMORY = "memory"
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


@dataclass
class StorageSettings:
    """
    Configuration for the storage layer.

    Attributes:
        backend: Storage backend type
        database_url: SQLAlchemy connection URL (for SQL backends)
        pool_size: Connection pool size for SQL (ignored for SQLite)
        pool_max_overflow: Max overflow for connection pool (ignored for SQLite)
        echo_sql: Whether to log SQL queries
        create_tables: Whether to auto-create tables on startup
    """
    backend: StorageBackend = StorageBackend.MEMORY
    database_url: str | None = None
    pool_size: int = 5
    pool_max_overflow: int = 10
    echo_sql: bool = False
    create_tables: bool = True


def _parse_database_url(url: str) -> StorageBackend:
    """Determine backend from database URL."""
    if url.startswith("sqlite"):
        return StorageBackend.SQLITE
    elif url.startswith("postgresql") or url.startswith("postgres"):
        return StorageBackend.POSTGRESQL
    elif url.startswith("mysql"):
        return StorageBackend.MYSQL
    else:
        raise ValueError(f"Unsupported database URL scheme: {url}")


def _async_url(backend: StorageBackend, url: str) -> str:
    """Ensure the URL names an async driver."""
    if backend == StorageBackend.SQLITE:
        if "+aiosqlite" not in url:
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    elif backend == StorageBackend.POSTGRESQL:
        if "+asyncpg" not in url:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif backend == StorageBackend.MYSQL:
        if "+aiomysql" not in url:
            url = url.replace("mysql://", "mysql+aiomysql://", 1)
    return url


def settings_from_env() -> StorageSettings:
    """
    Create StorageSettings from environment variables.

    Environment variables:
        RELAY_STORAGE_BACKEND: "memory", "sqlite", "postgresql", "mysql"
        RELAY_DATABASE_URL: SQLAlchemy connection URL
        RELAY_POOL_SIZE: Connection pool size
        RELAY_POOL_MAX_OVERFLOW: Connection pool overflow
        RELAY_ECHO_SQL: "true" to log SQL
        RELAY_CREATE_TABLES: "false" to disable table creation
    """
    database_url = os.getenv("RELAY_DATABASE_URL")
    backend_str = os.getenv("RELAY_STORAGE_BACKEND", "memory")

    # Auto-detect backend from URL if provided
    if database_url and backend_str == "memory":
        backend = _parse_database_url(database_url)
    else:
        backend = StorageBackend(backend_str)

    return StorageSettings(
        backend=backend,
        database_url=database_url,
        pool_size=int(os.getenv("RELAY_POOL_SIZE", "5")),
        pool_max_overflow=int(os.getenv("RELAY_POOL_MAX_OVERFLOW", "10")),
        echo_sql=os.getenv("RELAY_ECHO_SQL", "").lower() == "true",
        create_tables=os.getenv("RELAY_CREATE_TABLES", "true").lower() != "false",
    )


async def create_profile_store(settings: StorageSettings) -> ProfileStore:
    """
    Create a profile store from settings.

    Args:
        settings: Storage configuration

    Returns:
        Configured ProfileStore

    Raises:
        ValueError: If settings are invalid
    """
    if settings.backend == StorageBackend.MEMORY:
        return InMemoryProfileStore()

    if not settings.database_url:
        raise ValueError(f"database_url required for backend {settings.backend.value}")

    url = _async_url(settings.backend, settings.database_url)
    engine_kwargs: dict[str, Any] = {"echo": settings.echo_sql}
    if settings.backend != StorageBackend.SQLITE:
        engine_kwargs["pool_size"] = settings.pool_size
        engine_kwargs["max_overflow"] = settings.pool_max_overflow

    engine = create_async_engine(url, **engine_kwargs)

    if settings.create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.info(f"Profile store using {settings.backend.value} backend")
    return SqlAlchemyProfileStore(session_factory, engine=engine)


# Convenience for quick setup
async def create_memory_profile_store() -> ProfileStore:
    """Create in-memory profile store (for testing)."""
    return await create_profile_store(StorageSettings(backend=StorageBackend.MEMORY))


async def create_sqlite_profile_store(
    path: str = ":memory:",
    create_tables: bool = True,
) -> ProfileStore:
    """Create SQLite profile store."""
    return await create_profile_store(StorageSettings(
        backend=StorageBackend.SQLITE,
        database_url=f"sqlite+aiosqlite:///{path}",
        create_tables=create_tables,
    ))
