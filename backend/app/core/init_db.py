"""
Database initialization script.

Creates every SalesPulse table directly from the models. Production databases
are managed with Alembic; this is for local development and demos.
"""

import asyncio
import sys

from backend.app.core.database import Base, engine
from backend.app.core.logging import get_logger, setup_logging
import backend.app.models  # noqa: F401

logger = get_logger(__name__)


async def init_database():
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        logger.info("Creating SalesPulse tables...")
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    logger.info("Database initialized")


async def drop_all_tables():
    """Drop all tables (use with caution!)."""
    async with engine.begin() as conn:
        logger.warning("Dropping all tables...")
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
    logger.info("All tables dropped")


if __name__ == "__main__":
    setup_logging()
    if len(sys.argv) > 1 and sys.argv[1] == "--drop":
        print("⚠️ WARNING: This will drop all tables!")
        confirm = input("Type 'yes' to confirm: ")
        if confirm == "yes":
            asyncio.run(drop_all_tables())
        else:
            print("Aborted.")
    else:
        asyncio.run(init_database())
