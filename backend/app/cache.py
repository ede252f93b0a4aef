"""
MacroRelay Backend — Session Cache
====================================

What:  Redis-backed read-through cache for resolved sessions.
How:   The lifespan handler creates one `redis.asyncio.Redis` client from
       REDIS_URL and closes it at shutdown. SessionCache wraps that handle and
       is passed to SessionValidator explicitly; nothing here is global.

Key layout:
    macrorelay:session:<token>  →  UserResponse JSON, expires after
                                   SESSION_CACHE_TTL seconds

The database stays the source of truth. Every cache error is logged and
reported as a miss, so an unavailable Redis degrades to direct lookups
instead of failing authentication.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.schemas.auth import UserResponse

logger = logging.getLogger(__name__)

KEY_PREFIX = "macrorelay:session:"


def create_cache_client(redis_url: str) -> redis.Redis:
    """Build the client. Connections are opened lazily on first command."""
    return redis.from_url(redis_url, decode_responses=True)


async def close_cache_client(client: redis.Redis) -> None:
    await client.aclose()


class SessionCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int):
        self._client = client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(token: str) -> str:
        return f"{KEY_PREFIX}{token}"

    async def get(self, token: str) -> Optional[UserResponse]:
        try:
            raw = await self._client.get(self.key_for(token))
        except RedisError as e:
            logger.warning("Session cache read failed, falling back to database: %s", e)
            return None
        if raw is None:
            return None
        try:
            return UserResponse.model_validate_json(raw)
        except ValueError:
            logger.warning("Discarding malformed session cache entry")
            await self.delete(token)
            return None

    async def set(self, token: str, user: UserResponse) -> None:
        try:
            await self._client.set(self.key_for(token), user.model_dump_json(), ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning("Session cache write failed: %s", e)

    async def delete(self, token: str) -> None:
        try:
            await self._client.delete(self.key_for(token))
        except RedisError as e:
            logger.warning("Session cache eviction failed: %s", e)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning("Session cache ping failed: %s", e)
            return False
