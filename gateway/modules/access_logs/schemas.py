# gateway/modules/access_logs/schemas.py

from pydantic import BaseModel, ConfigDict
from uuid import UUID
from datetime import datetime


class AccessRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    service_id: str
    last_login: datetime
    is_authorized: bool
