"""
MacroRelay Backend — Password Hashing
=======================================

What:  argon2id hashing and verification for account passwords.
How:   argon2-cffi's PasswordHasher, tuned from settings. Both operations are
       slow and CPU-bound, so the async wrappers run them on a
       worker thread; callers hash/verify BEFORE opening a transaction.

Hashes are PHC strings ("$argon2id$v=19$m=...,t=...,p=...$salt$hash"),
so parameters can change without invalidating stored hashes.
"""

import asyncio
import logging

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from app.config import Settings

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Async facade over argon2id."""

    def __init__(self, time_cost: int = 3, memory_cost: int = 65_536, parallelism: int = 4):
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(self._hasher.hash, password)

    async def verify(self, password_hash: str, password: str) -> bool:
        """
        True if `password` matches `password_hash`.

        A mismatch and an unparseable stored hash both come back as False;
        the caller only ever learns "did not verify".
        """
        try:
            return await asyncio.to_thread(self._hasher.verify, password_hash, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as e:
            logger.warning("Stored password hash could not be verified: %s", type(e).__name__)
            return False
