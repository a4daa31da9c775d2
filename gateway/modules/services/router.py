# gateway/modules/services/router.py

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from gateway.dependencies.database import get_db_connection
from gateway.dependencies.permissions import require_admin
from gateway.modules.services.schemas import ServiceCreate, ServiceRecord, ServiceUpdate
from gateway.modules.services.service import ServiceRegistry

router = APIRouter(
    prefix="/admin/services",
    tags=["Admin: Services"],
    dependencies=[Depends(require_admin)],
)


def get_service_registry(conn=Depends(get_db_connection)) -> ServiceRegistry:
    return ServiceRegistry(conn)


@router.get("/", response_model=List[ServiceRecord])
async def list_services(
    registry: ServiceRegistry = Depends(get_service_registry),
):
    return await registry.list_all()


@router.post(
    "/",
    response_model=ServiceRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_service(
    body: ServiceCreate,
    registry: ServiceRegistry = Depends(get_service_registry),
):
    return await registry.create(body)


@router.patch("/{record_id}", response_model=ServiceRecord)
async def update_service(
    record_id: UUID,
    body: ServiceUpdate,
    registry: ServiceRegistry = Depends(get_service_registry),
):
    return await registry.update(record_id, body)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    record_id: UUID,
    registry: ServiceRegistry = Depends(get_service_registry),
):
    await registry.delete(record_id)
    return None
