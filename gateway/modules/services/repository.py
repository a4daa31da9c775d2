# gateway/modules/services/repository.py

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from asyncpg import Connection

from gateway.modules.services.schemas import ServiceCreate, ServiceRecord


_COLUMNS = """
    id,
    service_id,
    service_name,
    auth_type,
    idp_provider,
    federation_metadata,
    is_active,
    created_at,
    updated_at
"""

_UPDATABLE_COLUMNS = {
    "service_name",
    "auth_type",
    "idp_provider",
    "federation_metadata",
    "is_active",
}


class ServiceRepository:
    """
    Thin wrapper around the `services` table. Timestamps are passed in by
    the caller so the registry decides what "now" is.
    """

    def __init__(self, conn: Connection):
        self.conn = conn

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    async def get_by_service_id(self, service_id: str) -> Optional[ServiceRecord]:
        row = await self.conn.fetchrow(
            f"SELECT {_COLUMNS} FROM services WHERE service_id = $1",
            service_id,
        )
        return ServiceRecord(**row) if row else None

    async def get_by_id(self, record_id: UUID) -> Optional[ServiceRecord]:
        row = await self.conn.fetchrow(
            f"SELECT {_COLUMNS} FROM services WHERE id = $1",
            record_id,
        )
        return ServiceRecord(**row) if row else None

    async def list_services(self) -> List[ServiceRecord]:
        rows = await self.conn.fetch(
            f"SELECT {_COLUMNS} FROM services ORDER BY created_at DESC"
        )
        return [ServiceRecord(**r) for r in rows]

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------
    async def create(self, payload: ServiceCreate, now: datetime) -> ServiceRecord:
        row = await self.conn.fetchrow(
            f"""
            INSERT INTO services (
                service_id,
                service_name,
                auth_type,
                idp_provider,
                federation_metadata,
                is_active,
                created_at,
                updated_at
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $7)
            RETURNING {_COLUMNS}
            """,
            payload.service_id,
            payload.service_name,
            payload.auth_type.value,
            payload.idp_provider,
            payload.federation_metadata,
            payload.is_active,
            now,
        )
        return ServiceRecord(**row)

    # ------------------------------------------------------------------
    # UPDATE / DELETE
    # ------------------------------------------------------------------
    async def update(
        self,
        record_id: UUID,
        fields: Dict[str, Any],
        now: datetime,
    ) -> Optional[ServiceRecord]:
        """
        Apply only the given columns plus updated_at. Returns None when no
        row has that id.
        """
        assignments = ["updated_at = $2"]
        params: List[Any] = [record_id, now]

        # Start after $1 (id) and $2 (updated_at)
        idx = 3
        for column, value in fields.items():
            if column not in _UPDATABLE_COLUMNS:
                raise ValueError(f"Column {column!r} cannot be updated")
            assignments.append(f"{column} = ${idx}")
            params.append(value.value if hasattr(value, "value") else value)
            idx += 1

        row = await self.conn.fetchrow(
            f"""
            UPDATE services
            SET {", ".join(assignments)}
            WHERE id = $1
            RETURNING {_COLUMNS}
            """,
            *params,
        )
        return ServiceRecord(**row) if row else None

    async def delete(self, record_id: UUID) -> bool:
        result = await self.conn.execute(
            "DELETE FROM services WHERE id = $1",
            record_id,
        )
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return result.split()[-1] != "0"
