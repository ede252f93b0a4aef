"""
MacroRelay Backend — Credential Endpoint Rate Limit Tests
===========================================================

What we test:
    ✅ Sign-up/login attempts beyond the window limit get 429 + Retry-After
    ✅ Other endpoints are never limited
"""

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import create_app


@pytest.fixture
def limited_settings(test_settings):
    return test_settings.model_copy(update={"auth_rate_limit_requests": 2})


class TestAuthRateLimit:

    @pytest.mark.asyncio
    async def test_third_attempt_is_limited(self, limited_settings):
        app = create_app(limited_settings)
        async with app.router.lifespan_context(app):
            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                payload = {"username": "nobody", "password": "pw"}
                assert (await client.post("/auth/login", json=payload)).status_code == 404
                assert (await client.post("/auth/login", json=payload)).status_code == 404

                response = await client.post("/auth/signup", json=payload)

                assert response.status_code == 429
                assert int(response.headers["retry-after"]) > 0
                assert response.json()["error"] == "rate_limit_exceeded"

                # Unrelated endpoints stay available
                assert (await client.get("/health")).status_code == 200
                assert (await client.get("/auth/me")).status_code == 401
