# gateway/core/cache.py

import redis.asyncio as redis
from typing import Optional

from gateway.core.config import settings


class Cache:
    """
    Redis wrapper shared by the identity layer.

    Holds revoked session ids (until the session would have expired anyway)
    and the identity provider's JWKS document.
    """

    def __init__(self) -> None:
        self.redis: Optional[redis.Redis] = None

    async def connect(self) -> None:
        if self.redis is not None:
            return

        self.redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.close()
            self.redis = None

    async def ping(self) -> bool:
        try:
            if self.redis is None:
                await self.connect()
            return bool(await self.redis.ping())
        except Exception:
            return False

    async def _client(self) -> redis.Redis:
        if self.redis is None:
            await self.connect()
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        client = await self._client()
        return await client.get(key)

    async def set(self, key: str, value: str, ttl: int = 3600) -> None:
        client = await self._client()
        # Redis rejects a non-positive expiry
        await client.set(key, value, ex=max(int(ttl), 1))

    async def exists(self, key: str) -> bool:
        client = await self._client()
        return bool(await client.exists(key))

    # ---------------------------------------------------------
    # Session revocation
    # ---------------------------------------------------------
    async def revoke_session(self, jti: str, ttl: int) -> None:
        await self.set(f"revoked_session:{jti}", "1", ttl=ttl)

    async def is_session_revoked(self, jti: str) -> bool:
        return await self.exists(f"revoked_session:{jti}")


cache = Cache()
