# gateway/modules/groups/service.py

import logging
from datetime import datetime, timezone
from typing import List, Optional

from gateway.core.config import settings
from gateway.core.database import STORE_ERRORS
from gateway.core.exceptions import NotFoundError, RegistryMutationError
from gateway.core.identity import UserIdentity
from gateway.modules.auth.session_observer import SessionObserver
from gateway.modules.groups.repository import GroupRepository
from gateway.modules.groups.schemas import GroupMembership, GroupMembershipCreate

logger = logging.getLogger(__name__)


class AuthorizationGuard:
    """
    Group-membership checks. Fail-closed: a missing row and a failed lookup
    both answer "no".

    This decides what the gateway exposes; it is not a security boundary
    on its own. The database grants for the gateway role must mirror it.
    """

    def __init__(self, repo: GroupRepository, admin_group: Optional[str] = None):
        self.repo = repo
        self.admin_group = admin_group or settings.ADMIN_GROUP

    async def is_user_in_group(self, user_id: str, group_name: str) -> bool:
        try:
            return await self.repo.exists(user_id, group_name)
        except Exception as e:
            logger.warning("Group check %s/%s failed, denying: %s", user_id, group_name, e)
            return False

    async def list_user_groups(self, user_id: str) -> List[str]:
        try:
            memberships = await self.repo.list_for_user(user_id)
        except Exception as e:
            logger.warning("Listing groups of %s failed: %s", user_id, e)
            return []
        return [m.group_name for m in memberships]

    async def is_admin(self, observer: SessionObserver) -> bool:
        user = observer.get_snapshot().user
        if user is None:
            return False
        return await self.is_user_in_group(user.user_id, self.admin_group)


class GroupService:
    def __init__(self, repo: GroupRepository):
        self.repo = repo

    async def list_memberships(self, user_id: str) -> List[GroupMembership]:
        return await self.repo.list_for_user(user_id)

    async def assign(self, payload: GroupMembershipCreate) -> GroupMembership:
        """
        Idempotent: assigning an existing membership returns the stored row.
        """
        try:
            created = await self.repo.add(
                payload.user_id,
                payload.group_name,
                assigned_at=datetime.now(timezone.utc),
            )
            if created is not None:
                logger.info("User %s added to group %r", payload.user_id, payload.group_name)
                return created

            for membership in await self.repo.list_for_user(payload.user_id):
                if membership.group_name == payload.group_name:
                    return membership
        except STORE_ERRORS as e:
            logger.exception("Assigning %s to %r failed", payload.user_id, payload.group_name)
            raise RegistryMutationError("Failed to assign group membership") from e

        # Removed concurrently between the insert and the read
        raise NotFoundError("Group membership not found")

    async def revoke(self, user_id: str, group_name: str) -> None:
        try:
            removed = await self.repo.remove(user_id, group_name)
        except STORE_ERRORS as e:
            logger.exception("Removing %s from %r failed", user_id, group_name)
            raise RegistryMutationError("Failed to remove group membership") from e

        if not removed:
            raise NotFoundError("Group membership not found")
        logger.info("User %s removed from group %r", user_id, group_name)

    async def record_sign_in_groups(self, user: UserIdentity) -> None:
        """
        Sync the groups claimed by the identity provider into user_groups
        as provider rows: add the claimed ones, drop those no longer
        claimed. The admin group is never taken from claims; it is granted
        by an administrator only. Failures are logged and dropped so
        sign-in proceeds.
        """
        admin_group = settings.ADMIN_GROUP
        claimed = sorted(set(user.groups) - {admin_group})
        if admin_group in user.groups:
            logger.warning(
                "Ignoring claimed group %r for %s; it must be granted by an administrator",
                admin_group,
                user.user_id,
            )

        now = datetime.now(timezone.utc)
        for group_name in claimed:
            try:
                await self.repo.add(user.user_id, group_name, assigned_at=now, source="provider")
            except Exception:
                logger.exception("Recording group %r for %s failed", group_name, user.user_id)

        try:
            removed = await self.repo.prune_provider_groups(user.user_id, keep=claimed)
        except Exception:
            logger.exception("Pruning provider groups for %s failed", user.user_id)
            return
        if removed:
            logger.info("Removed %d unclaimed provider group(s) for %s", removed, user.user_id)
