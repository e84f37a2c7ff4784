#!/usr/bin/env python3
"""
Initialize database tables without migrations
Creates the trips, itineraries and api_usage tables
"""

import asyncio
import logging
import sys
from pathlib import Path

# Ensure backend/ is on sys.path for "yatra.*" imports when run as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from sqlalchemy import inspect

from yatra.db.session import db_manager

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def init_database() -> None:
    """Initialize database tables"""
    try:
        logger.info("Connecting to database...")
        await db_manager.initialize()

        logger.info("Creating all tables...")
        await db_manager.init_db()

        async with db_manager.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        logger.info(f"Tables present: {', '.join(sorted(tables))}")
    finally:
        await db_manager.close()


if __name__ == "__main__":
    try:
        asyncio.run(init_database())
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)
