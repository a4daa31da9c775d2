# gateway/core/identity.py

"""
Client for the external identity provider.

The gateway never speaks the federation protocol itself. It sends the
visitor to the provider's hosted sign-in UI, exchanges the returned
authorization code for an ID token, verifies that token against the
provider's JWKS, and from then on tracks the visitor with its own session
JWT (see gateway.core.security).

One client is built per request: the request plays the part of a browser
page, so events emitted on `events` only ever reach observers of the same
visitor.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Literal, Optional
from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt
from pydantic import BaseModel, Field

from gateway.core.cache import Cache
from gateway.core.config import Settings, settings as default_settings
from gateway.core.exceptions import IdentityProviderError, NotAuthenticatedError
from gateway.core.security import (
    create_session_token,
    decode_session_token,
    seconds_until,
)

logger = logging.getLogger(__name__)


class UserIdentity(BaseModel):
    user_id: str
    login_id: Optional[str] = None
    groups: List[str] = Field(default_factory=list)


class AuthEvent(BaseModel):
    kind: Literal["signed_in", "signed_out"]
    user: Optional[UserIdentity] = None


AuthListener = Callable[[AuthEvent], None]


class IdentityEvents:
    """
    Sign-in / sign-out event stream. Listeners run synchronously, in
    registration order, when an event is dispatched.
    """

    def __init__(self) -> None:
        self._listeners: List[AuthListener] = []

    def listen(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def dispatch(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class IdentityProvider(ABC):
    """
    Contract the rest of the gateway relies on. Concrete providers override
    every coroutine; `events` and `session_token` are shared plumbing.
    """

    def __init__(self, session_token: Optional[str] = None) -> None:
        self.events = IdentityEvents()
        self._session_token = session_token

    @property
    def session_token(self) -> Optional[str]:
        return self._session_token

    @abstractmethod
    async def redirect_to_sign_in(self, provider: str, state: Optional[str] = None) -> str:
        """Return the URL that starts the hosted sign-in flow."""

    @abstractmethod
    async def complete_sign_in(self, code: str) -> UserIdentity:
        ...

    @abstractmethod
    async def get_current_user(self) -> UserIdentity:
        ...

    @abstractmethod
    async def sign_out(self) -> None:
        ...


class HostedIdentityProvider(IdentityProvider):
    """
    OAuth2 authorization-code client for a hosted UI exposing
    /oauth2/authorize, /oauth2/token and /.well-known/jwks.json
    (Cognito user pools and most OIDC providers).
    """

    def __init__(
        self,
        cache: Cache,
        session_token: Optional[str] = None,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(session_token)
        self.cache = cache
        self.config = config or default_settings
        self._transport = transport

    # ------------------------------------------------------------------
    # SIGN IN
    # ------------------------------------------------------------------
    async def redirect_to_sign_in(self, provider: str, state: Optional[str] = None) -> str:
        base_url = self._require_base_url()
        if not self.config.IDP_CLIENT_ID:
            raise IdentityProviderError("IDP_CLIENT_ID is not configured")

        params = {
            "response_type": "code",
            "client_id": self.config.IDP_CLIENT_ID,
            "redirect_uri": self.config.IDP_REDIRECT_URI,
            "scope": self.config.IDP_SCOPES,
            "identity_provider": provider,
        }
        if state:
            params["state"] = state

        return f"{base_url}/oauth2/authorize?{urlencode(params)}"

    async def complete_sign_in(self, code: str) -> UserIdentity:
        """
        Exchange the authorization code, verify the ID token and start a
        gateway session. Emits `signed_in` on success.
        """
        tokens = await self._exchange_code(code)

        id_token = tokens.get("id_token")
        if not id_token:
            raise IdentityProviderError("Token response did not include an id_token")

        claims = await self._verify_id_token(id_token, tokens.get("access_token"))

        user = UserIdentity(
            user_id=claims["sub"],
            login_id=claims.get("email") or claims.get("cognito:username"),
            groups=list(claims.get(self.config.IDP_GROUPS_CLAIM) or []),
        )

        self._session_token = create_session_token(
            {
                "sub": user.user_id,
                "login_id": user.login_id,
                "groups": user.groups,
            }
        )
        self.events.dispatch(AuthEvent(kind="signed_in", user=user))
        return user

    # ------------------------------------------------------------------
    # CURRENT USER
    # ------------------------------------------------------------------
    async def get_current_user(self) -> UserIdentity:
        if not self._session_token:
            raise NotAuthenticatedError()

        payload = decode_session_token(self._session_token)
        if not payload or not payload.get("sub"):
            raise NotAuthenticatedError("Invalid or expired session")

        jti = payload.get("jti")
        if jti and await self.cache.is_session_revoked(jti):
            raise NotAuthenticatedError("Session has been signed out")

        return UserIdentity(
            user_id=payload["sub"],
            login_id=payload.get("login_id"),
            groups=list(payload.get("groups") or []),
        )

    # ------------------------------------------------------------------
    # SIGN OUT
    # ------------------------------------------------------------------
    async def sign_out(self) -> None:
        """
        Revoke the current session until its natural expiry, then emit
        `signed_out`.
        """
        token = self._session_token
        if token:
            payload = decode_session_token(token, verify_exp=False)
            if payload and payload.get("jti"):
                ttl = seconds_until(payload.get("exp"))
                if ttl > 0:
                    await self.cache.revoke_session(payload["jti"], ttl)

        self._session_token = None
        self.events.dispatch(AuthEvent(kind="signed_out"))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_base_url(self) -> str:
        base_url = self.config.IDP_BASE_URL
        if not base_url:
            raise IdentityProviderError("IDP_DOMAIN is not configured")
        return base_url

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    async def _exchange_code(self, code: str) -> Dict[str, Any]:
        base_url = self._require_base_url()
        data = {
            "grant_type": "authorization_code",
            "client_id": self.config.IDP_CLIENT_ID,
            "code": code,
            "redirect_uri": self.config.IDP_REDIRECT_URI,
        }
        auth = None
        if self.config.IDP_CLIENT_SECRET:
            auth = (self.config.IDP_CLIENT_ID, self.config.IDP_CLIENT_SECRET)

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{base_url}/oauth2/token",
                    data=data,
                    auth=auth,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Token endpoint unreachable: {e}") from e

        if response.status_code != 200:
            raise IdentityProviderError(
                f"Token exchange rejected ({response.status_code}): {response.text}"
            )
        return response.json()

    async def _get_jwks(self) -> Dict[str, Any]:
        issuer = self.config.IDP_ISSUER
        cache_key = f"jwks:{issuer}"

        try:
            cached = await self.cache.get(cache_key)
        except Exception as e:
            logger.warning("JWKS cache read failed: %s", e)
            cached = None
        if cached:
            return json.loads(cached)

        try:
            async with self._client() as client:
                response = await client.get(f"{issuer}/.well-known/jwks.json")
                response.raise_for_status()
                jwks = response.json()
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"Could not fetch JWKS: {e}") from e

        try:
            await self.cache.set(cache_key, json.dumps(jwks), ttl=self.config.JWKS_CACHE_TTL_SECONDS)
        except Exception as e:
            logger.warning("JWKS cache write failed: %s", e)
        return jwks

    async def _verify_id_token(self, id_token: str, access_token: Optional[str] = None) -> Dict[str, Any]:
        jwks = await self._get_jwks()

        try:
            header = jwt.get_unverified_header(id_token)
        except JWTError as e:
            raise IdentityProviderError(f"Malformed id_token: {e}") from e

        key = next((k for k in jwks.get("keys", []) if k.get("kid") == header.get("kid")), None)
        if key is None:
            raise IdentityProviderError("Public key not found for id_token")

        try:
            return jwt.decode(
                id_token,
                key,
                algorithms=["RS256"],
                audience=self.config.IDP_CLIENT_ID,
                issuer=self.config.IDP_ISSUER,
                access_token=access_token,
            )
        except JWTError as e:
            raise IdentityProviderError(f"id_token verification failed: {e}") from e
