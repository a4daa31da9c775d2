# gateway/modules/groups/router.py

from typing import List

from fastapi import APIRouter, Depends, status

from gateway.dependencies.database import get_db_connection
from gateway.dependencies.permissions import require_admin
from gateway.modules.groups.repository import GroupRepository
from gateway.modules.groups.schemas import GroupMembership, GroupMembershipCreate
from gateway.modules.groups.service import GroupService

router = APIRouter(
    prefix="/admin/groups",
    tags=["Admin: Groups"],
    dependencies=[Depends(require_admin)],
)


def get_group_service(conn=Depends(get_db_connection)) -> GroupService:
    return GroupService(GroupRepository(conn))


@router.get("/{user_id}", response_model=List[GroupMembership])
async def list_user_memberships(
    user_id: str,
    service: GroupService = Depends(get_group_service),
):
    return await service.list_memberships(user_id)


@router.post(
    "/",
    response_model=GroupMembership,
    status_code=status.HTTP_201_CREATED,
)
async def assign_membership(
    body: GroupMembershipCreate,
    service: GroupService = Depends(get_group_service),
):
    return await service.assign(body)


@router.delete("/{user_id}/{group_name}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_membership(
    user_id: str,
    group_name: str,
    service: GroupService = Depends(get_group_service),
):
    await service.revoke(user_id, group_name)
    return None
