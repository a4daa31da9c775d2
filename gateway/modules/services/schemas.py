# gateway/modules/services/schemas.py

from enum import Enum
from typing import Optional
from uuid import UUID
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AuthType(str, Enum):
    DIRECT = "direct"
    FEDERATED = "federated"


class ServiceCreate(BaseModel):
    service_id: str = Field(..., min_length=1, max_length=128, pattern=r"^[A-Za-z0-9._-]+$")
    service_name: str = Field(..., min_length=1)
    auth_type: AuthType
    idp_provider: Optional[str] = None
    federation_metadata: Optional[str] = None
    is_active: bool = True


class ServiceUpdate(BaseModel):
    """
    Partial update. `service_id` is not accepted: it is fixed at creation.
    """
    model_config = ConfigDict(extra="forbid")

    service_name: Optional[str] = Field(default=None, min_length=1)
    auth_type: Optional[AuthType] = None
    idp_provider: Optional[str] = None
    federation_metadata: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("service_name", "auth_type", "is_active")
    @classmethod
    def not_null(cls, v):
        # Omit a field to leave it unchanged; these columns are NOT NULL
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ServiceRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_id: str
    service_name: str
    auth_type: AuthType
    idp_provider: Optional[str] = None
    federation_metadata: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
