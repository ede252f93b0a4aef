"""
MacroRelay Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs `SELECT 1` against the database and PING against the session
       cache, then reports an aggregate status.

Status levels:
    healthy:   database and cache reachable (HTTP 200)
    degraded:  database reachable, cache down (HTTP 200);
               sessions still resolve from the database
    unhealthy: database unreachable (HTTP 503)

    The cache reports "disabled" when SESSION_CACHE_TTL is 0.
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app import __version__
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request):
    db_status = "connected"
    cache_status = "connected"
    overall = "healthy"

    try:
        async with request.app.state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    cache = request.app.state.session_cache
    if cache.ttl_seconds == 0:
        cache_status = "disabled"
    elif not await cache.ping():
        cache_status = "disconnected"
        if overall == "healthy":
            overall = "degraded"

    payload = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        cache=cache_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(status_code=status_code, content=payload.model_dump())
