"""
MacroRelay Backend — Shared Response Schemas
==============================================

What:  Error and health payloads used across every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "user 'alice' was not found",
            "request_id": "1f2e3d4c"
        }

    Upstream trigger failures that carry a response body are the exception:
    they are passed through as-is, not wrapped in this shape.
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    cache: str = Field(description="Session cache: connected, disconnected, disabled")
    uptime_seconds: float = Field(description="Seconds since service started")
