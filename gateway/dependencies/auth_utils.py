# gateway/dependencies/auth_utils.py

"""
Per-request identity wiring.

FastAPI caches dependencies within a request, so the route, the session
observer and the dispatcher all share one identity client. Events the
route triggers on it (sign-in on callback, sign-out) therefore reach the
same observer that seeded itself from the session cookie.
"""

from typing import AsyncGenerator

from fastapi import Depends, Request

from gateway.core.cache import cache
from gateway.core.exceptions import NotAuthenticatedError
from gateway.core.identity import HostedIdentityProvider, IdentityProvider, UserIdentity
from gateway.core.security import get_session_token
from gateway.modules.auth.session_observer import SessionObserver


def get_identity_provider(request: Request) -> IdentityProvider:
    return HostedIdentityProvider(
        cache=cache,
        session_token=get_session_token(request),
    )


async def get_session_observer(
    identity: IdentityProvider = Depends(get_identity_provider),
) -> AsyncGenerator[SessionObserver, None]:
    """
    Activate an observer for the lifetime of the request. Its listener is
    removed however the request ends.
    """
    observer = SessionObserver(identity)
    async with observer.observe():
        yield observer


def get_current_user(
    observer: SessionObserver = Depends(get_session_observer),
) -> UserIdentity:
    """
    FastAPI dependency for routes that need a signed-in user.
    """
    user = observer.get_snapshot().user
    if user is None:
        raise NotAuthenticatedError()
    return user
