# gateway/modules/access_logs/repository.py

from datetime import datetime

from asyncpg import Connection

from gateway.modules.access_logs.schemas import AccessRecord


class AccessLogRepository:
    """
    Append-only writer for the `user_services` table. Every successful
    sign-in callback adds a row; rows are never updated or read back here.
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    async def create(self, user_id: str, service_id: str, last_login: datetime) -> AccessRecord:
        # Savepoint: a failed insert must not abort the request's transaction
        async with self.conn.transaction():
            row = await self.conn.fetchrow(
                """
                INSERT INTO user_services (
                    user_id,
                    service_id,
                    last_login,
                    is_authorized
                )
                VALUES ($1, $2, $3, TRUE)
                RETURNING id, user_id, service_id, last_login, is_authorized
                """,
                user_id,
                service_id,
                last_login,
            )
        return AccessRecord(**row)
