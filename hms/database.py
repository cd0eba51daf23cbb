"""Database configuration and connection management."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hms.config import settings


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    PostgreSQL gets a sized connection pool and an application name; SQLite
    keeps the driver defaults since it does not accept pool sizing.

    Args:
        url: SQLAlchemy database URL with an async driver
        overrides: Extra keyword arguments passed to create_async_engine

    Returns:
        Configured async engine
    """
    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}

    if make_url(url).get_backend_name() == "postgresql":
        if "poolclass" not in overrides:
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_recycle=3600,
            )
        options.update(
            connect_args={
                "server_settings": {
                    "application_name": settings.app_name,
                },
            },
        )

    options.update(overrides)
    return create_async_engine(url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory used as the unit-of-work factory."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Create async engine with connection pooling
engine: AsyncEngine = build_engine(settings.async_database_url)

# Async session factory
AsyncSessionLocal = build_session_factory(engine)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency for services that open their own units of work."""
    return AsyncSessionLocal


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
