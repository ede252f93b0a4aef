"""
MacroRelay Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file (aiosqlite) under
       pytest's tmp_path, with the real schema created from the models.
       Redis is never contacted: the session cache is disabled (TTL 0) or
       replaced with an AsyncMock client.

Fixture Hierarchy:
    test_settings     Settings pointing at the per-test SQLite file
    ├── engine / session_factory   real async engine with tables created
    │   ├── hasher                 argon2 with minimal cost parameters
    │   ├── authenticator          Authenticator without a cache
    │   └── alice                  a signed-up user (UserResponse, token)
    └── relay_app / test_client    app built by create_app() with its
                                   lifespan entered; HTTPX AsyncClient
"""

import os

# Set before any app import so the module-level settings never point at a
# real database or cache.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["SESSION_CACHE_TTL"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import AsyncGenerator, Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.config import Settings  # noqa: E402
from app.database import create_engine, create_session_factory, create_tables, dispose_engine  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.auth_service import Authenticator  # noqa: E402
from app.services.macro_service import MacroService  # noqa: E402
from app.services.passwords import PasswordHasher  # noqa: E402
from app.services.trigger_client import TriggerClient  # noqa: E402

TRIGGER_BASE_URL = "https://trigger.test"


# ══════════════════════════════════════════════════════════════════════════
# Configuration
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings for one test: private SQLite file, no cache, cheap hashing."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'macrorelay.db'}",
        redis_url="redis://localhost:6379/15",
        session_cache_ttl=0,
        database_auto_create=True,
        argon2_time_cost=1,
        argon2_memory_cost=1024,
        argon2_parallelism=1,
        trigger_base_url=TRIGGER_BASE_URL,
        auth_rate_limit_requests=1000,
        log_level="WARNING",
    )


# ══════════════════════════════════════════════════════════════════════════
# Database & Services
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine(test_settings):
    engine = create_engine(test_settings)
    await create_tables(engine)
    yield engine
    await dispose_engine(engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def authenticator(session_factory, hasher) -> Authenticator:
    return Authenticator(session_factory, hasher)


@pytest_asyncio.fixture
async def alice(authenticator):
    """A freshly signed-up user: (UserResponse, session token)."""
    return await authenticator.sign_up("alice", "correct horse")


def _mock_trigger_client(handler: Callable[[httpx.Request], httpx.Response]) -> TriggerClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TriggerClient(http, TRIGGER_BASE_URL)


@pytest.fixture
def make_trigger_client():
    """Build a TriggerClient whose HTTP traffic is answered by a handler function."""
    return _mock_trigger_client


# ══════════════════════════════════════════════════════════════════════════
# Application & HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def relay_app(test_settings):
    """
    Application with its lifespan entered.

    ASGITransport does not send lifespan events, so the startup/shutdown
    handler is run here explicitly.
    """
    application = create_app(test_settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def test_client(relay_app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=relay_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def use_trigger_handler(relay_app):
    """Swap the app's trigger client for one answered by a handler function."""

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> None:
        relay_app.state.macro_service = MacroService(
            relay_app.state.session_factory, _mock_trigger_client(handler)
        )

    return install
