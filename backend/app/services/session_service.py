"""
MacroRelay Backend — Session Validator
========================================

What:  Resolves an opaque session token to the user that owns it.
How:   One primary-key lookup on sessions joined to users. When a
       SessionCache is supplied (and its TTL is positive) the lookup reads
       through Redis first and populates it on a miss.
Who:   Called by the `get_current_user` dependency on every protected route,
       and by the Authenticator's logout to evict cache entries.

Sessions never expire server-side; a token stays valid until logout (or
until its user is deleted, which cascades). A cached entry can outlive a
user deletion by at most SESSION_CACHE_TTL seconds.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.cache import SessionCache
from app.exceptions import DatabaseError, UnauthorizedError
from app.models.user import Session, User
from app.schemas.auth import UserResponse

logger = logging.getLogger(__name__)


class SessionValidator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: Optional[SessionCache] = None,
    ):
        self._session_factory = session_factory
        self._cache = cache if cache is not None and cache.ttl_seconds > 0 else None

    async def resolve(self, token: Optional[str]) -> UserResponse:
        """
        Return the user bound to `token`.

        Raises:
            UnauthorizedError: no token, or no session row matches it
            DatabaseError: the lookup itself failed
        """
        if not token:
            raise UnauthorizedError(message="No session token supplied")

        if self._cache is not None:
            cached = await self._cache.get(token)
            if cached is not None:
                return cached

        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(User)
                    .join(Session, Session.user_id == User.id)
                    .where(Session.id == token)
                )
                user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Session lookup failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "resolve_session"})

        if user is None:
            logger.info("Rejected unknown session token")
            raise UnauthorizedError(message="Session is invalid or has ended")

        public = UserResponse.model_validate(user)
        if self._cache is not None:
            await self._cache.set(token, public)
        return public

    async def invalidate(self, token: str) -> None:
        if self._cache is not None:
            await self._cache.delete(token)
