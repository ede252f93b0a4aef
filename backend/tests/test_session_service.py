"""
MacroRelay Backend — Session Validator & Cache Tests
======================================================

What we test:
    ✅ Valid token resolves to its user; missing/unknown tokens are 401s
    ✅ Cache hit skips the database; miss populates the cache with a TTL
    ✅ Redis failures degrade to database lookups
    ✅ TTL 0 disables the cache entirely
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.cache import SessionCache
from app.exceptions import UnauthorizedError
from app.services.session_service import SessionValidator


def mock_redis():
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    return client


class TestResolve:

    @pytest.mark.asyncio
    async def test_valid_token(self, session_factory, alice):
        user, token = alice
        resolved = await SessionValidator(session_factory).resolve(token)
        assert resolved.id == user.id
        assert resolved.name == "alice"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token(self, session_factory, token):
        with pytest.raises(UnauthorizedError):
            await SessionValidator(session_factory).resolve(token)

    @pytest.mark.asyncio
    async def test_unknown_token(self, session_factory, alice):
        with pytest.raises(UnauthorizedError):
            await SessionValidator(session_factory).resolve("not-a-real-token")


class TestCache:

    @pytest.mark.asyncio
    async def test_miss_populates_cache(self, session_factory, alice):
        user, token = alice
        client = mock_redis()
        validator = SessionValidator(session_factory, SessionCache(client, ttl_seconds=120))

        await validator.resolve(token)

        client.get.assert_awaited_once_with(SessionCache.key_for(token))
        client.set.assert_awaited_once()
        args, kwargs = client.set.call_args
        assert args[0] == f"macrorelay:session:{token}"
        assert kwargs["ex"] == 120
        assert "password" not in args[1]

    @pytest.mark.asyncio
    async def test_hit_skips_database(self, alice):
        user, token = alice
        client = mock_redis()
        client.get = AsyncMock(return_value=user.model_dump_json())
        factory = MagicMock(side_effect=AssertionError("database must not be queried"))
        validator = SessionValidator(factory, SessionCache(client, ttl_seconds=120))

        resolved = await validator.resolve(token)

        assert resolved == user
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_redis_down_falls_back_to_database(self, session_factory, alice):
        user, token = alice
        client = mock_redis()
        client.get = AsyncMock(side_effect=RedisConnectionError("refused"))
        client.set = AsyncMock(side_effect=RedisConnectionError("refused"))
        validator = SessionValidator(session_factory, SessionCache(client, ttl_seconds=120))

        resolved = await validator.resolve(token)

        assert resolved.id == user.id

    @pytest.mark.asyncio
    async def test_malformed_entry_is_discarded(self, session_factory, alice):
        user, token = alice
        client = mock_redis()
        client.get = AsyncMock(return_value="{not json")
        validator = SessionValidator(session_factory, SessionCache(client, ttl_seconds=120))

        resolved = await validator.resolve(token)

        assert resolved.id == user.id
        client.delete.assert_awaited_once_with(SessionCache.key_for(token))

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_cache(self, session_factory, alice):
        _, token = alice
        client = mock_redis()
        validator = SessionValidator(session_factory, SessionCache(client, ttl_seconds=0))

        await validator.resolve(token)
        await validator.invalidate(token)

        client.get.assert_not_awaited()
        client.set.assert_not_awaited()
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ping_failure_reports_false(self):
        client = mock_redis()
        client.ping = AsyncMock(side_effect=RedisConnectionError("refused"))
        assert await SessionCache(client, ttl_seconds=60).ping() is False
