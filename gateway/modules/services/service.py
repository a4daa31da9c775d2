# gateway/modules/services/service.py

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from asyncpg import UniqueViolationError

from gateway.core.database import STORE_ERRORS
from gateway.core.exceptions import (
    ConflictError,
    NotFoundError,
    RegistryMutationError,
    RegistryUnavailableError,
)
from gateway.modules.services.repository import ServiceRepository
from gateway.modules.services.schemas import ServiceCreate, ServiceRecord, ServiceUpdate

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ServiceRegistry:
    """
    Service registry access functions.

    Reads return None for "no such service" and raise
    RegistryUnavailableError when the store itself fails, so callers can
    tell the two apart. Mutations stamp timestamps here and surface every
    store failure to the caller; nothing is retried.
    """

    def __init__(self, conn):
        self.conn = conn
        self.repo = ServiceRepository(conn)

    # ---------------------------------------------------------
    # READ
    # ---------------------------------------------------------
    async def lookup(self, service_id: str) -> Optional[ServiceRecord]:
        try:
            return await self.repo.get_by_service_id(service_id)
        except STORE_ERRORS as e:
            logger.error("Service lookup failed for %r: %s", service_id, e)
            raise RegistryUnavailableError() from e

    async def list_all(self) -> List[ServiceRecord]:
        try:
            return await self.repo.list_services()
        except STORE_ERRORS as e:
            logger.error("Listing services failed: %s", e)
            raise RegistryUnavailableError("Failed to load services") from e

    # ---------------------------------------------------------
    # CREATE
    # ---------------------------------------------------------
    async def create(self, payload: ServiceCreate) -> ServiceRecord:
        try:
            record = await self.repo.create(payload, now=_utcnow())
        except UniqueViolationError as e:
            raise ConflictError(f"Service '{payload.service_id}' already exists") from e
        except STORE_ERRORS as e:
            logger.exception("Creating service %r failed", payload.service_id)
            raise RegistryMutationError("Failed to create service") from e

        logger.info("Service %r created", record.service_id)
        return record

    # ---------------------------------------------------------
    # UPDATE
    # ---------------------------------------------------------
    async def update(self, record_id: UUID, payload: ServiceUpdate) -> ServiceRecord:
        fields = payload.model_dump(exclude_unset=True)
        try:
            record = await self.repo.update(record_id, fields, now=_utcnow())
        except STORE_ERRORS as e:
            logger.exception("Updating service %s failed", record_id)
            raise RegistryMutationError("Failed to update service") from e

        if record is None:
            raise NotFoundError("Service not found")

        logger.info("Service %r updated: %s", record.service_id, sorted(fields))
        return record

    # ---------------------------------------------------------
    # DELETE
    # ---------------------------------------------------------
    async def delete(self, record_id: UUID) -> None:
        try:
            deleted = await self.repo.delete(record_id)
        except STORE_ERRORS as e:
            logger.exception("Deleting service %s failed", record_id)
            raise RegistryMutationError("Failed to delete service") from e

        if not deleted:
            raise NotFoundError("Service not found")

        logger.info("Service %s deleted", record_id)
