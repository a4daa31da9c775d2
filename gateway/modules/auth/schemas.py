# gateway/modules/auth/schemas.py

from typing import List, Optional

from pydantic import BaseModel

from gateway.modules.auth.dispatcher import DispatchState
from gateway.modules.services.schemas import AuthType


class ServiceInfo(BaseModel):
    service_id: str
    service_name: str
    auth_type: AuthType
    idp_provider: Optional[str] = None


class UserInfo(BaseModel):
    user_id: str
    login_id: Optional[str] = None


class ServicePageResponse(BaseModel):
    state: DispatchState
    service: ServiceInfo
    user: Optional[UserInfo] = None
    sign_out_url: Optional[str] = None


class CurrentUserResponse(BaseModel):
    user_id: str
    login_id: Optional[str] = None
    groups: List[str]
    is_admin: bool


class LandingResponse(BaseModel):
    app: str
    signed_in: bool
    usage: str
