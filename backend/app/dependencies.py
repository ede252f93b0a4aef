"""
MacroRelay Backend — FastAPI Dependencies
===========================================

What:  Bridges route handlers to the service objects the lifespan handler
       stored on `app.state`, and authenticates requests.

Token sources, in order:
    1. Authorization: Bearer <token>   (scripts, API clients)
    2. the session cookie              (browsers; name from settings)
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings
from app.schemas.auth import UserResponse
from app.services.auth_service import Authenticator
from app.services.device_service import DeviceService
from app.services.macro_service import MacroService
from app.services.session_service import SessionValidator

_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_session_validator(request: Request) -> SessionValidator:
    return request.app.state.session_validator


def get_device_service(request: Request) -> DeviceService:
    return request.app.state.device_service


def get_macro_service(request: Request) -> MacroService:
    return request.app.state.macro_service


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(get_settings(request).session_cookie_name) or None


async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    validator: SessionValidator = Depends(get_session_validator),
) -> UserResponse:
    """Resolve the caller; raises UnauthorizedError (401) when there is no valid session."""
    return await validator.resolve(token)
