"""
Session cache: user snapshots and revoked credentials

Values are either idempotent (a user snapshot) or write-once (a revocation),
so writers do not lock; last writer wins. A cached snapshot may lag storage by
up to USER_CACHE_TTL_SECONDS unless the writer of the change invalidates it
(password change and deactivation do).
"""

from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple
import json
import time

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from travel_crm.core.config import get_settings

logger = structlog.get_logger(__name__)

USER_PREFIX = "user:"
REVOKED_PREFIX = "revoked:"


class SessionCache(ABC):
    """Key-value cache with TTL, shared across tenants"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def invalidate(self, key: str) -> None:
        ...

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.get(f"{USER_PREFIX}{user_id}")

    async def set_user(self, user_id: str, snapshot: Dict[str, Any], ttl_seconds: int) -> None:
        await self.set(f"{USER_PREFIX}{user_id}", snapshot, ttl_seconds)

    async def invalidate_user(self, user_id: str) -> None:
        await self.invalidate(f"{USER_PREFIX}{user_id}")

    async def revoke(self, jti: str, ttl_seconds: int) -> None:
        await self.set(f"{REVOKED_PREFIX}{jti}", {"revoked": True}, ttl_seconds)

    async def is_revoked(self, jti: str) -> bool:
        return await self.get(f"{REVOKED_PREFIX}{jti}") is not None


class RedisSessionCache(SessionCache):
    """Redis-backed cache used in deployed environments"""

    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisSessionCache":
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=2,
        )
        return cls(client)

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        # An unreachable cache degrades to a miss; callers fall back to storage
        try:
            data = await self.client.get(key)
        except RedisError as e:
            logger.warning("Session cache read failed", key=key, error=str(e))
            return None
        if data is None:
            return None
        return json.loads(data)

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        try:
            await self.client.set(key, json.dumps(value, default=str), ex=ttl_seconds)
        except RedisError as e:
            logger.warning("Session cache write failed", key=key, error=str(e))

    async def invalidate(self, key: str) -> None:
        await self.client.delete(key)

    async def close(self) -> None:
        await self.client.aclose()


class MemorySessionCache(SessionCache):
    """Process-local cache for development and tests"""

    def __init__(self):
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            self._entries.pop(key, None)
            return None
        return dict(value)

    async def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        # Round-trip through JSON so callers see the same shapes as with Redis
        stored = json.loads(json.dumps(value, default=str))
        self._entries[key] = (time.monotonic() + ttl_seconds, stored)

    async def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


@lru_cache()
def get_session_cache() -> SessionCache:
    """Process-wide cache instance selected by CACHE_BACKEND"""
    settings = get_settings()
    if settings.CACHE_BACKEND == "memory":
        logger.info("Session cache backend: memory")
        return MemorySessionCache()

    logger.info("Session cache backend: redis", url=settings.REDIS_URL)
    return RedisSessionCache.from_url(settings.REDIS_URL)
