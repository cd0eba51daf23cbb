"""Script to initialize the database."""

import asyncio

import structlog

from hms.database import engine
from hms.middleware.logging import configure_logging
from hms.models import metadata

logger = structlog.get_logger()


async def init_db() -> None:
    """Create all tables directly from the table metadata.

    Meant for local SQLite databases; PostgreSQL deployments use the
    Alembic migrations, which also install the no-overlap constraint.
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    logger.info("database_initialized", database_url=engine.url.render_as_string())


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())
