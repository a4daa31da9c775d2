# gateway/dependencies/permissions.py

from fastapi import Depends

from gateway.core.exceptions import NotAuthenticatedError, PermissionDenied
from gateway.core.identity import UserIdentity
from gateway.dependencies.auth_utils import get_session_observer
from gateway.dependencies.database import get_db_connection
from gateway.modules.auth.session_observer import SessionObserver
from gateway.modules.groups.repository import GroupRepository
from gateway.modules.groups.service import AuthorizationGuard


def get_authorization_guard(conn=Depends(get_db_connection)) -> AuthorizationGuard:
    return AuthorizationGuard(GroupRepository(conn))


async def require_admin(
    observer: SessionObserver = Depends(get_session_observer),
    guard: AuthorizationGuard = Depends(get_authorization_guard),
) -> UserIdentity:
    """
    Gate for the admin API.

    Usage:
        @router.get("/x", dependencies=[Depends(require_admin)])
    """
    user = observer.get_snapshot().user
    if user is None:
        raise NotAuthenticatedError()

    if not await guard.is_admin(observer):
        raise PermissionDenied("Administrator group membership required")

    return user
