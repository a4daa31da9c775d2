# gateway/modules/auth/router.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from gateway.core.config import settings
from gateway.core.exceptions import (
    AuthenticationFailedError,
    IdentityProviderError,
    RegistryUnavailableError,
    ServiceInactiveError,
    ServiceNotFoundError,
)
from gateway.core.identity import IdentityProvider, UserIdentity
from gateway.dependencies.auth_utils import (
    get_current_user,
    get_identity_provider,
    get_session_observer,
)
from gateway.dependencies.database import get_db_connection
from gateway.dependencies.permissions import get_authorization_guard
from gateway.modules.access_logs.repository import AccessLogRepository
from gateway.modules.access_logs.service import AccessLog
from gateway.modules.auth.dispatcher import AuthDispatcher, DispatchError, DispatchState
from gateway.modules.auth.schemas import (
    CurrentUserResponse,
    LandingResponse,
    ServiceInfo,
    ServicePageResponse,
    UserInfo,
)
from gateway.modules.auth.session_observer import SessionObserver
from gateway.modules.groups.router import get_group_service
from gateway.modules.groups.service import AuthorizationGuard, GroupService
from gateway.modules.services.service import ServiceRegistry

logger = logging.getLogger(__name__)

# Visitor-facing pages. Mounted last: "/{service_id}" matches any single segment.
router = APIRouter(tags=["Gateway"])

# JSON API for the signed-in user, mounted under /api/v1
api_router = APIRouter(prefix="/me", tags=["Auth"])

SIGN_OUT_PATH = "/auth/sign-out"

_DISPATCH_ERRORS = {
    DispatchError.NOT_FOUND: ServiceNotFoundError,
    DispatchError.INACTIVE: ServiceInactiveError,
    DispatchError.LOOKUP_FAILED: RegistryUnavailableError,
    DispatchError.AUTHENTICATION_FAILED: AuthenticationFailedError,
}


# -------------------------------------------------------
# Dependency factories
# -------------------------------------------------------
def get_auth_dispatcher(
    conn=Depends(get_db_connection),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> AuthDispatcher:
    return AuthDispatcher(
        registry=ServiceRegistry(conn),
        identity=identity,
        access_log=AccessLog(AccessLogRepository(conn)),
    )


def _set_session_cookie(response: RedirectResponse, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


# -------------------------------------------------------
# LANDING
# -------------------------------------------------------
@router.get("/", response_model=LandingResponse)
async def landing(observer: SessionObserver = Depends(get_session_observer)):
    return LandingResponse(
        app=settings.APP_NAME,
        signed_in=observer.get_snapshot().user is not None,
        usage="Open /{serviceId} to sign in to a registered service.",
    )


# -------------------------------------------------------
# CALLBACK (phase 2 of the redirect flow)
# -------------------------------------------------------
@router.get("/auth/callback")
async def auth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
    identity: IdentityProvider = Depends(get_identity_provider),
    observer: SessionObserver = Depends(get_session_observer),
    dispatcher: AuthDispatcher = Depends(get_auth_dispatcher),
    groups: GroupService = Depends(get_group_service),
):
    """
    The identity provider sends the visitor here with `code` and, for
    federated services, `state` carrying the service id.
    """
    if error:
        logger.warning("Identity provider returned %s: %s", error, error_description)
        raise AuthenticationFailedError()

    signed_in = False
    if code:
        try:
            user = await identity.complete_sign_in(code)
        except IdentityProviderError as e:
            logger.warning("Completing sign-in failed: %s", e)
            raise AuthenticationFailedError() from e
        signed_in = True
        await groups.record_sign_in_groups(user)

    location = await dispatcher.handle_callback(observer.get_snapshot(), state)
    if location is None:
        raise AuthenticationFailedError("Sign-in was not completed")

    response = RedirectResponse(location, status_code=status.HTTP_302_FOUND)
    if signed_in and identity.session_token:
        _set_session_cookie(response, identity.session_token)
    return response


# -------------------------------------------------------
# SIGN OUT
# -------------------------------------------------------
# POST only: a cross-site GET (image, link) must not end the session
@router.post(SIGN_OUT_PATH)
async def sign_out(identity: IdentityProvider = Depends(get_identity_provider)):
    await identity.sign_out()

    response = RedirectResponse(
        settings.DEFAULT_LANDING_PATH,
        status_code=status.HTTP_303_SEE_OTHER,
    )
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


# -------------------------------------------------------
# SERVICE PAGE (phase 1 of the redirect flow)
# -------------------------------------------------------
@router.get("/{service_id}", response_model=ServicePageResponse)
async def service_page(
    service_id: str,
    observer: SessionObserver = Depends(get_session_observer),
    dispatcher: AuthDispatcher = Depends(get_auth_dispatcher),
):
    result = await dispatcher.dispatch(service_id, observer.get_snapshot())

    if result.state == DispatchState.ERROR:
        raise _DISPATCH_ERRORS[result.error]()

    if result.state == DispatchState.AUTHENTICATING:
        return RedirectResponse(result.redirect_url, status_code=status.HTTP_302_FOUND)

    service = result.service
    page = ServicePageResponse(
        state=result.state,
        service=ServiceInfo(
            service_id=service.service_id,
            service_name=service.service_name,
            auth_type=service.auth_type,
            idp_provider=service.idp_provider,
        ),
    )
    if result.user is not None:
        page.user = UserInfo(user_id=result.user.user_id, login_id=result.user.login_id)
        page.sign_out_url = SIGN_OUT_PATH
    return page


# -------------------------------------------------------
# CURRENT USER
# -------------------------------------------------------
@api_router.get("", response_model=CurrentUserResponse)
async def current_user(
    user: UserIdentity = Depends(get_current_user),
    observer: SessionObserver = Depends(get_session_observer),
    guard: AuthorizationGuard = Depends(get_authorization_guard),
):
    return CurrentUserResponse(
        user_id=user.user_id,
        login_id=user.login_id,
        groups=await guard.list_user_groups(user.user_id),
        is_admin=await guard.is_admin(observer),
    )
