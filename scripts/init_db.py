"""
Create the destination tables for STORE_BACKEND=postgres.

The Supabase (PostgREST) backend expects the same tables to exist
already; they are defined once in ``models``.
"""

import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import load_settings
from core.database import create_engine
from core.exceptions import ConfigError
# Importing the package registers every table on Base.metadata
from models import Base

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def init_database(settings):
    if not settings.DATABASE_URL:
        raise ConfigError(
            "DATABASE_URL is required to create tables",
            context={"variables": ["DATABASE_URL"]}
        )

    logger.info("Connecting to database...")
    engine = create_engine(settings)

    try:
        async with engine.begin() as conn:
            logger.info("Creating tables...")
            await conn.run_sync(Base.metadata.create_all)
            logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    try:
        asyncio.run(init_database(load_settings()))
    except ConfigError as e:
        logger.error(str(e))
        sys.exit(1)
