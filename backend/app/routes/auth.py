"""
MacroRelay Backend — Authentication Route Handlers
====================================================

What:  Sign-up, login, logout, "who am I" and key provisioning over HTTP.
How:   Each handler delegates to the Authenticator / SessionValidator and
       manages the session cookie.

Session cookie (set on sign-up and login, cleared on logout):
    name      sessionId (SESSION_COOKIE_NAME)
    path      /
    flags     HttpOnly, SameSite=Strict, Secure when SESSION_COOKIE_SECURE
    max-age   31536000 seconds (SESSION_COOKIE_MAX_AGE)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from app.config import Settings
from app.dependencies import (
    get_authenticator,
    get_current_user,
    get_session_token,
    get_settings,
)
from app.schemas.auth import Credentials, KeysUpdate, LogoutResponse, UserResponse
from app.schemas.common import ErrorResponse
from app.services.auth_service import Authenticator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_cookie_max_age,
        path="/",
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite="strict",
    )


@router.post(
    "/signup",
    status_code=201,
    response_model=UserResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        409: {"description": "Username already taken", "model": ErrorResponse},
    },
    summary="Create an account and start a session",
)
async def signup(
    credentials: Credentials,
    response: Response,
    authenticator: Authenticator = Depends(get_authenticator),
    settings: Settings = Depends(get_settings),
) -> UserResponse:
    user, token = await authenticator.sign_up(credentials.username, credentials.password)
    _set_session_cookie(response, token, settings)
    return user


@router.post(
    "/login",
    status_code=201,
    response_model=UserResponse,
    responses={
        400: {"description": "Missing username or password", "model": ErrorResponse},
        401: {"description": "Invalid password", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Log in and start a new session",
)
async def login(
    credentials: Credentials,
    response: Response,
    authenticator: Authenticator = Depends(get_authenticator),
    settings: Settings = Depends(get_settings),
) -> UserResponse:
    user, token = await authenticator.login(credentials.username, credentials.password)
    _set_session_cookie(response, token, settings)
    return user


@router.get(
    "/logout",
    response_model=LogoutResponse,
    responses={400: {"description": "No session found", "model": ErrorResponse}},
    summary="End the current session",
    description="Idempotent: logging out with an already-ended session still succeeds.",
)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    authenticator: Authenticator = Depends(get_authenticator),
    settings: Settings = Depends(get_settings),
) -> LogoutResponse:
    await authenticator.logout(token)
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite="strict",
    )
    return LogoutResponse()


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "No valid session", "model": ErrorResponse}},
    summary="Return the authenticated user",
)
async def me(user: UserResponse = Depends(get_current_user)) -> UserResponse:
    return user


@router.put(
    "/me/keys",
    response_model=UserResponse,
    responses={
        400: {"description": "Blank keys, or keys on a non-RESTRICTED account", "model": ErrorResponse},
        401: {"description": "No valid session", "model": ErrorResponse},
    },
    summary="Replace the keys held by the authenticated user",
)
async def replace_my_keys(
    body: KeysUpdate,
    user: UserResponse = Depends(get_current_user),
    authenticator: Authenticator = Depends(get_authenticator),
) -> UserResponse:
    return await authenticator.replace_keys(user.id, body.keys)
