# gateway/modules/auth/dispatcher.py

"""
Two-phase authentication dispatch.

Phase one (`dispatch`) runs on GET /{service_id}: resolve the service, then
either authorize the already signed-in user or hand the visitor to the
identity provider. Phase two (`handle_callback`) runs on the provider's
redirect back. Nothing survives between the phases except the correlation
token, which the provider echoes back as the OAuth2 `state` parameter.
"""

import logging
from enum import Enum
from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel

from gateway.core.config import Settings, settings as default_settings
from gateway.core.exceptions import RegistryUnavailableError
from gateway.core.identity import IdentityProvider, UserIdentity
from gateway.modules.access_logs.service import AccessLog
from gateway.modules.auth.session_observer import SessionSnapshot
from gateway.modules.services.schemas import AuthType, ServiceRecord
from gateway.modules.services.service import ServiceRegistry

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    AUTHENTICATING = "authenticating"
    AUTHORIZED = "authorized"
    ERROR = "error"


class DispatchError(str, Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    LOOKUP_FAILED = "lookup_failed"
    AUTHENTICATION_FAILED = "authentication_failed"


class DispatchResult(BaseModel):
    state: DispatchState
    error: Optional[DispatchError] = None
    service: Optional[ServiceRecord] = None
    user: Optional[UserIdentity] = None
    redirect_url: Optional[str] = None


class AuthDispatcher:
    def __init__(
        self,
        registry: ServiceRegistry,
        identity: IdentityProvider,
        access_log: AccessLog,
        config: Optional[Settings] = None,
    ):
        self.registry = registry
        self.identity = identity
        self.access_log = access_log
        self.config = config or default_settings
        self.state = DispatchState.IDLE

    # ------------------------------------------------------------------
    # PHASE 1: service page
    # ------------------------------------------------------------------
    async def dispatch(self, service_id: str, snapshot: SessionSnapshot) -> DispatchResult:
        self._enter(DispatchState.RESOLVING, service_id)

        try:
            service = await self.registry.lookup(service_id)
        except RegistryUnavailableError:
            return self._fail(DispatchError.LOOKUP_FAILED, service_id)

        if service is None:
            return self._fail(DispatchError.NOT_FOUND, service_id)
        if not service.is_active:
            return self._fail(DispatchError.INACTIVE, service_id, service=service)

        self._enter(DispatchState.RESOLVED, service_id)

        if snapshot.loading:
            # The current-user check has not answered yet
            return DispatchResult(state=self.state, service=service)

        if snapshot.user is None:
            return await self._authenticate(service)

        self._enter(DispatchState.AUTHORIZED, service_id)
        return DispatchResult(state=self.state, service=service, user=snapshot.user)

    async def _authenticate(self, service: ServiceRecord) -> DispatchResult:
        self._enter(DispatchState.AUTHENTICATING, service.service_id)

        try:
            if service.auth_type == AuthType.FEDERATED:
                url = await self.identity.redirect_to_sign_in(
                    self.config.FEDERATED_PROVIDER_NAME,
                    state=service.service_id,
                )
            else:
                url = await self.identity.redirect_to_sign_in(
                    self.config.DEFAULT_PROVIDER_NAME,
                )
        except Exception:
            logger.exception("Starting sign-in for service %r failed", service.service_id)
            return self._fail(
                DispatchError.AUTHENTICATION_FAILED,
                service.service_id,
                service=service,
            )

        return DispatchResult(state=self.state, service=service, redirect_url=url)

    # ------------------------------------------------------------------
    # PHASE 2: callback
    # ------------------------------------------------------------------
    async def handle_callback(
        self,
        snapshot: SessionSnapshot,
        correlation_token: Optional[str],
    ) -> Optional[str]:
        """
        Returns where to send the visitor next, or None while nobody is
        signed in.

        The token is taken at face value: it is not signed, and nothing
        checks that this visitor was ever dispatched to that service.
        """
        user = snapshot.user
        if user is None:
            return None

        if not correlation_token:
            return self.config.DEFAULT_LANDING_PATH

        await self.access_log.record_access(user.user_id, correlation_token)
        # Quoted so the token can only name a path on this host
        return f"/{quote(correlation_token, safe='')}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _enter(self, state: DispatchState, service_id: str) -> None:
        logger.debug("dispatch %r: %s -> %s", service_id, self.state.value, state.value)
        self.state = state

    def _fail(
        self,
        error: DispatchError,
        service_id: str,
        service: Optional[ServiceRecord] = None,
    ) -> DispatchResult:
        self._enter(DispatchState.ERROR, service_id)
        logger.info("dispatch %r failed: %s", service_id, error.value)
        return DispatchResult(state=self.state, error=error, service=service)
