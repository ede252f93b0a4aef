"""
MacroRelay Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance;
       the lifespan handler opens every shared resource and wires the
       services onto `app.state`.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌────────────┐ ┌─────────────┐ ┌──────────────────────┐ │
    │  │  Req ID    │→│ Access log  │→│ Auth rate limit      │ │
    │  └────────────┘ └─────────────┘ └──────────────────────┘ │
    │                                                          │
    │  Routes:                                                 │
    │  ┌────────────┐ ┌──────────────────────┐ ┌────────────┐  │
    │  │ /auth/*    │ │ /api/devices, macros │ │ GET /health│  │
    │  └────────────┘ └──────────────────────┘ └────────────┘  │
    │                                                          │
    │  Exception Handlers:                                     │
    │  400 │ 401 │ 403 │ 404 │ 409 │ 429 │ upstream │ 500      │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate configuration (fail fast on unusable URLs)
    3. Open the database engine, Redis client and outbound HTTP client
    4. Build the services and store them on app.state

    Shutdown:
    1. Close the outbound HTTP client
    2. Close the Redis client
    3. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response

from app import __version__
from app.cache import SessionCache, close_cache_client, create_cache_client
from app.config import Settings, settings as default_settings
from app.database import create_engine, create_session_factory, create_tables, dispose_engine
from app.exceptions import (
    AccessDeniedError,
    ConflictError,
    DatabaseError,
    MacroRelayError,
    NotFoundError,
    RateLimitExceededError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import AuthRateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import auth, devices, health
from app.services.auth_service import Authenticator
from app.services.device_service import DeviceService
from app.services.macro_service import MacroService
from app.services.passwords import PasswordHasher
from app.services.session_service import SessionValidator
from app.services.trigger_client import TriggerClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s

    Called once at startup, before any other initialization. Session tokens
    and passwords are never passed to a logger anywhere in the application.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    # httpx logs full request URLs at INFO, which include macro parameters
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open shared resources on startup and release them on shutdown.

    Everything a request needs is reachable from `app.state`:
        settings, engine, session_factory, session_cache, http_client,
        authenticator, session_validator, device_service, macro_service

    A configuration error aborts startup; the server never serves requests
    against a database or cache URL it cannot use.
    """
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("MacroRelay Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    if settings.database_auto_create:
        await create_tables(engine)
        logger.info("Database tables ensured (DATABASE_AUTO_CREATE)")

    cache_client = create_cache_client(settings.redis_url)
    session_cache = SessionCache(cache_client, settings.session_cache_ttl)
    if settings.session_cache_ttl == 0:
        logger.info("Session cache disabled (SESSION_CACHE_TTL=0)")

    http_client = httpx.AsyncClient(timeout=settings.trigger_timeout_seconds)

    hasher = PasswordHasher.from_settings(settings)
    session_validator = SessionValidator(session_factory, session_cache)

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.session_cache = session_cache
    app.state.http_client = http_client
    app.state.session_validator = session_validator
    app.state.authenticator = Authenticator(session_factory, hasher, session_validator)
    app.state.device_service = DeviceService(session_factory)
    app.state.macro_service = MacroService(
        session_factory, TriggerClient(http_client, settings.trigger_base_url)
    )

    logger.info("Trigger service: %s", settings.trigger_base_url)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    try:
        yield
    finally:
        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("MacroRelay Backend shutting down...")
        await http_client.aclose()
        await close_cache_client(cache_client)
        await dispose_engine(engine)
        logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[dict] = None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the shared error format.

    Handler hierarchy:
        ValidationError, RequestValidationError → 400
        UnauthorizedError                       → 401 (WWW-Authenticate: Bearer)
        AccessDeniedError                       → 403
        NotFoundError                           → 404
        ConflictError                           → 409
        RateLimitExceededError                  → 429 (Retry-After)
        UpstreamError                           → upstream response verbatim,
                                                  or 502 / 504
        DatabaseError, MacroRelayError          → 500
        Exception (fallback)                    → 500

    Handlers never expose stack traces, SQL or hashes in the response body.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Malformed request bodies are client errors like any other: 400, not 422."""
        problems = [
            {
                "loc": [str(part) for part in err.get("loc", ())],
                "msg": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "validation_error", "Request body is invalid", {"errors": problems}
            ),
        )

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(AccessDeniedError)
    async def handle_access_denied(request: Request, exc: AccessDeniedError):
        logger.info("[%s] Access denied: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=403,
            content=_error_body("forbidden", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=_error_body("conflict", exc.message, exc.context),
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(UpstreamError)
    async def handle_upstream_error(request: Request, exc: UpstreamError):
        rid = request_id_var.get("")
        if exc.passthrough:
            logger.info("[%s] Trigger service answered %d", rid, exc.status_code)
            return Response(
                content=exc.body,
                status_code=exc.status_code,
                media_type=exc.content_type,
            )
        logger.error("[%s] Trigger service error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body("upstream_error", exc.message),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        # Context is logged server-side only
        logger.error(
            "[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(MacroRelayError)
    async def handle_application_error(request: Request, exc: MacroRelayError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration to run with; defaults to the environment-loaded
                  singleton. Tests pass their own instance.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="MacroRelay API",
        description=(
            "Password sessions, device and macro registration, and an access-controlled "
            "relay that invokes macros through an external trigger service."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: RequestID → Logging →
    # AuthRateLimit → GZip → CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,  # session cookie
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        AuthRateLimitMiddleware,
        max_requests=settings.auth_rate_limit_requests,
        window_seconds=settings.auth_rate_limit_window,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(devices.router)
    app.include_router(health.router)

    return app


# uvicorn expects `app.main:app` to be importable
app = create_app()
