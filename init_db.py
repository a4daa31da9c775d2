import asyncio
import logging
import os
import sys

import asyncpg

from gateway.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("init_db")

SCHEMA_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schema.sql")


async def init_database() -> bool:
    logger.info("Applying %s to %s...", SCHEMA_FILE, settings.DATABASE_HOST)

    try:
        with open(SCHEMA_FILE, "r") as f:
            sql = f.read()
    except FileNotFoundError:
        logger.error("'%s' file not found.", SCHEMA_FILE)
        return False

    conn = None
    try:
        conn = await asyncpg.connect(settings.DATABASE_URL)
        await conn.execute(sql)
        logger.info("Schema applied successfully.")
        return True
    except (asyncpg.PostgresError, OSError) as e:
        logger.error("Database error: %s", e)
        return False
    finally:
        if conn is not None:
            await conn.close()


if __name__ == "__main__":
    sys.exit(0 if asyncio.run(init_database()) else 1)
