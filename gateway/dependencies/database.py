# gateway/dependencies/database.py

from typing import AsyncGenerator

from gateway.core.database import db


async def get_db_connection() -> AsyncGenerator:
    """
    One pooled connection (and one transaction) per request.
    """
    async for conn in db.get_connection():
        yield conn
