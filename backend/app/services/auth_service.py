"""
MacroRelay Backend — Authenticator
====================================

What:  Account sign-up, password login, logout and key provisioning.
How:   A plain service object holding the session factory, the password
       hasher and (optionally) the session validator for cache eviction.
       Built once in the lifespan handler and injected into routes.
Who:   Called by the /auth/* route handlers.

Transaction layout:
    sign_up:  hash ─▶ [ check name · insert user · insert session ]
    login:    [ read user ] ─▶ verify hash ─▶ [ re-read user · insert session ]
    logout:   [ delete session ] ─▶ evict cache
    keys:     [ update user · list its sessions ] ─▶ evict each from cache

    Brackets are single transactions. Hashing and verification run on a
    worker thread between transactions, never inside one. The second login
    transaction re-reads the user so a session is never issued for a user
    deleted (or whose password changed) while the hash was being checked.

Duplicate names are handled twice: a pre-check inside the sign-up
transaction gives the common case a clean ConflictError, and the unique
constraint on users.name catches two sign-ups racing past the pre-check.
Either way exactly one of them succeeds.
"""

import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.models.user import Session, User
from app.schemas.auth import UserResponse
from app.services.access import normalize_keys
from app.services.passwords import PasswordHasher
from app.services.session_service import SessionValidator

logger = logging.getLogger(__name__)


def _require_credentials(name: str, raw_password: str) -> None:
    if not name or not name.strip() or not raw_password:
        raise ValidationError(message="Missing username or password")


class Authenticator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        hasher: PasswordHasher,
        sessions: Optional[SessionValidator] = None,
    ):
        self._session_factory = session_factory
        self._hasher = hasher
        self._sessions = sessions

    async def sign_up(self, name: str, raw_password: str) -> Tuple[UserResponse, str]:
        """
        Create a user and its first session atomically.

        Returns:
            (public user, session token)

        Raises:
            ValidationError: blank name or password
            ConflictError: name already taken
            DatabaseError: any other persistence failure
        """
        _require_credentials(name, raw_password)
        password_hash = await self._hasher.hash(raw_password)

        try:
            async with self._session_factory.begin() as db:
                taken = await db.scalar(select(User.id).where(User.name == name))
                if taken is not None:
                    raise ConflictError(resource="user", field="name")

                user = User(name=name, password_hash=password_hash)
                db.add(user)
                await db.flush()

                session = Session(user_id=user.id)
                db.add(session)
                await db.flush()
        except IntegrityError:
            logger.info("Sign-up for an existing name lost the race to a concurrent insert")
            raise ConflictError(resource="user", field="name")
        except SQLAlchemyError as e:
            logger.error("Sign-up failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "sign_up"})

        logger.info("User %s signed up", user.id)
        return UserResponse.model_validate(user), session.id

    async def login(self, name: str, raw_password: str) -> Tuple[UserResponse, str]:
        """
        Verify credentials and issue a new session.

        Raises:
            ValidationError: blank name or password
            NotFoundError: no user with this name
            UnauthorizedError: password does not verify
            DatabaseError: any other persistence failure
        """
        _require_credentials(name, raw_password)

        try:
            async with self._session_factory() as db:
                user = await db.scalar(select(User).where(User.name == name))
        except SQLAlchemyError as e:
            logger.error("User lookup failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "login"})

        if user is None:
            raise NotFoundError(resource="user", resource_id=name)

        if not await self._hasher.verify(user.password_hash, raw_password):
            logger.info("Password mismatch for user %s", user.id)
            raise UnauthorizedError(message="Invalid password")

        try:
            async with self._session_factory.begin() as db:
                current = await db.scalar(select(User).where(User.id == user.id))
                if current is None:
                    raise NotFoundError(resource="user", resource_id=name)
                if current.password_hash != user.password_hash:
                    raise UnauthorizedError(message="Invalid password")

                session = Session(user_id=current.id)
                db.add(session)
                await db.flush()
        except IntegrityError:
            # FK violation: the user row vanished between re-read and insert
            raise NotFoundError(resource="user", resource_id=name)
        except SQLAlchemyError as e:
            logger.error("Session creation failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "login"})

        logger.info("User %s logged in", current.id)
        return UserResponse.model_validate(current), session.id

    async def logout(self, token: Optional[str]) -> None:
        """
        End the session identified by `token`.

        An unknown token is treated as already logged out and succeeds.

        Raises:
            ValidationError: no token supplied
            DatabaseError: the delete failed
        """
        if not token:
            raise ValidationError(message="No session found", field="sessionId")

        try:
            async with self._session_factory.begin() as db:
                result = await db.execute(delete(Session).where(Session.id == token))
        except SQLAlchemyError as e:
            logger.error("Logout failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "logout"})

        if self._sessions is not None:
            await self._sessions.invalidate(token)

        if result.rowcount == 0:
            logger.info("Logout for unknown session, nothing to delete")
        else:
            logger.info("Session ended")

    async def replace_keys(self, user_id: uuid.UUID, keys: Iterable[str]) -> UserResponse:
        """
        Replace the key set held by a user.

        Every cached session of the user is evicted afterwards, so the new
        keys apply to the next request on any of its sessions.

        Raises:
            ValidationError: blank keys, or keys on a non-RESTRICTED user
            NotFoundError: the user no longer exists
            DatabaseError: any other persistence failure
        """
        try:
            async with self._session_factory.begin() as db:
                user = await db.get(User, user_id)
                if user is None:
                    raise NotFoundError(resource="user", resource_id=str(user_id))
                user.keys = normalize_keys(user.access, keys)
                await db.flush()
                result = await db.scalars(select(Session.id).where(Session.user_id == user_id))
                tokens: List[str] = list(result.all())
        except SQLAlchemyError as e:
            logger.error("Key update failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "replace_keys"})

        if self._sessions is not None:
            for token in tokens:
                await self._sessions.invalidate(token)

        logger.info("User %s now holds %d keys", user.id, len(user.keys))
        return UserResponse.model_validate(user)
