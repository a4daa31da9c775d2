# gateway/core/security.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from fastapi import Request
from jose import JWTError, jwt

from gateway.core.config import settings


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------

def create_session_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign the gateway's own session JWT.

    - data: claims (copied), at least "sub"
    - expires_delta: expiry window; defaults to SESSION_EXPIRE_MINUTES
    """
    to_encode = data.copy()

    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)
    expire = now + expires_delta

    to_encode.update(
        {
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "type": "session",
            "jti": str(uuid4()),
        }
    )

    return jwt.encode(
        to_encode,
        settings.SESSION_SECRET_KEY,
        algorithm=settings.SESSION_ALGORITHM,
    )


def decode_session_token(token: str, verify_exp: bool = True) -> Optional[Dict[str, Any]]:
    """
    Decode a session JWT. Returns the payload, or None when the signature,
    expiry or token type is wrong.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET_KEY,
            algorithms=[settings.SESSION_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
    except JWTError:
        return None

    if payload.get("type") != "session":
        return None
    return payload


def datetime_from_timestamp(ts: Union[int, float]) -> datetime:
    """Convert a UNIX timestamp (seconds) to timezone-aware datetime."""
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def seconds_until(ts: Union[int, float, None]) -> int:
    """Seconds from now until `ts`; 0 once it has passed."""
    if ts is None:
        return 0
    remaining = datetime_from_timestamp(ts) - datetime.now(timezone.utc)
    return max(int(remaining.total_seconds()), 0)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------

def get_session_token(request: Request) -> Optional[str]:
    """
    Read the session token from the session cookie, falling back to an
    `Authorization: Bearer` header for API clients.

    Returns None when neither is present; an anonymous visitor is not an error.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token

    auth_header = request.headers.get("authorization")
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
