# gateway/modules/groups/schemas.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional
from uuid import UUID
from datetime import datetime


class GroupMembershipCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    group_name: str = Field(..., min_length=1, max_length=128)


class GroupMembership(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    group_name: str
    assigned_at: Optional[datetime] = None
    source: Literal["admin", "provider"] = "admin"
