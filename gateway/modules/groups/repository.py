# gateway/modules/groups/repository.py

from datetime import datetime
from typing import List, Optional

from asyncpg import Connection

from gateway.modules.groups.schemas import GroupMembership

_COLUMNS = "id, user_id, group_name, assigned_at, source"


class GroupRepository:
    def __init__(self, conn: Connection):
        self.conn = conn

    # ---------------------------------------------------------
    # READ
    # ---------------------------------------------------------
    async def exists(self, user_id: str, group_name: str) -> bool:
        row = await self.conn.fetchrow(
            """
            SELECT 1
            FROM user_groups
            WHERE user_id = $1
              AND group_name = $2
            LIMIT 1
            """,
            user_id,
            group_name,
        )
        return row is not None

    async def list_for_user(self, user_id: str) -> List[GroupMembership]:
        rows = await self.conn.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM user_groups
            WHERE user_id = $1
            ORDER BY group_name
            """,
            user_id,
        )
        return [GroupMembership(**r) for r in rows]

    # ---------------------------------------------------------
    # MEMBERS
    # ---------------------------------------------------------
    async def add(
        self,
        user_id: str,
        group_name: str,
        assigned_at: datetime,
        source: str = "admin",
    ) -> Optional[GroupMembership]:
        """
        Insert the membership if absent. Returns None when it already existed.

        An administrator assigning a provider-synced row takes it over, so
        later sign-ins no longer remove it.
        """
        async with self.conn.transaction():
            row = await self.conn.fetchrow(
                f"""
                INSERT INTO user_groups (user_id, group_name, assigned_at, source)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (user_id, group_name) DO UPDATE
                    SET source = EXCLUDED.source
                    WHERE user_groups.source = 'provider'
                      AND EXCLUDED.source = 'admin'
                RETURNING {_COLUMNS}
                """,
                user_id,
                group_name,
                assigned_at,
                source,
            )
        return GroupMembership(**row) if row else None

    async def remove(self, user_id: str, group_name: str) -> bool:
        result = await self.conn.execute(
            """
            DELETE FROM user_groups
            WHERE user_id = $1
              AND group_name = $2
            """,
            user_id,
            group_name,
        )
        return result.split()[-1] != "0"

    async def prune_provider_groups(self, user_id: str, keep: List[str]) -> int:
        """
        Delete provider-synced memberships the provider no longer claims.
        Administrator-assigned rows are never touched.
        """
        async with self.conn.transaction():
            result = await self.conn.execute(
                """
                DELETE FROM user_groups
                WHERE user_id = $1
                  AND source = 'provider'
                  AND NOT (group_name = ANY($2::text[]))
                """,
                user_id,
                list(keep),
            )
        return int(result.split()[-1])
