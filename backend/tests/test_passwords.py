"""
MacroRelay Backend — Password Hashing Tests
=============================================
"""

import pytest

from app.services.passwords import PasswordHasher


class TestPasswordHasher:

    @pytest.mark.asyncio
    async def test_hash_then_verify(self, hasher):
        password_hash = await hasher.hash("correct horse")
        assert await hasher.verify(password_hash, "correct horse") is True

    @pytest.mark.asyncio
    async def test_mismatch(self, hasher):
        password_hash = await hasher.hash("correct horse")
        assert await hasher.verify(password_hash, "battery staple") is False

    @pytest.mark.asyncio
    async def test_salted(self, hasher):
        assert await hasher.hash("same") != await hasher.hash("same")

    @pytest.mark.asyncio
    async def test_garbage_hash_does_not_verify(self, hasher):
        assert await hasher.verify("not-a-phc-string", "anything") is False

    @pytest.mark.asyncio
    async def test_parameters_from_settings(self, test_settings):
        hasher = PasswordHasher.from_settings(test_settings)
        password_hash = await hasher.hash("pw")
        assert "m=1024,t=1,p=1" in password_hash
