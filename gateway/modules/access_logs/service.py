# gateway/modules/access_logs/service.py

import logging
from datetime import datetime, timezone
from typing import Optional

from gateway.modules.access_logs.repository import AccessLogRepository
from gateway.modules.access_logs.schemas import AccessRecord

logger = logging.getLogger(__name__)


class AccessLog:
    def __init__(self, repo: AccessLogRepository):
        self.repo = repo

    async def record_access(self, user_id: str, service_id: str) -> Optional[AccessRecord]:
        """
        Write one access record. A failed write is logged and dropped: the
        audit trail never stands between a user and the service.
        """
        try:
            return await self.repo.create(
                user_id=user_id,
                service_id=service_id,
                last_login=datetime.now(timezone.utc),
            )
        except Exception:
            logger.exception(
                "Recording access of user %s to service %r failed", user_id, service_id
            )
            return None
