"""
MacroRelay Backend — Authentication Schemas
=============================================

What:  Request/response models for /auth/* endpoints.

UserResponse has no password field at all, so no code path can serialize a
hash by accident: `model_validate(user_row)` only copies declared fields.

Credentials default both fields to "" so that a missing field and a blank
field take the same path: the Authenticator rejects either with a 400.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.models.enums import AccessTier


class Credentials(BaseModel):
    """Body of POST /auth/signup and POST /auth/login."""
    username: str = Field(default="", max_length=255, description="Unique account name")
    password: str = Field(default="", max_length=1024, description="Plain-text password")


class UserResponse(BaseModel):
    """Public representation of a user. Also the cached session payload."""
    id: uuid.UUID = Field(description="User identifier")
    name: str = Field(description="Unique account name")
    access: AccessTier = Field(description="Access tier of the account")
    keys: List[str] = Field(default_factory=list, description="Keys held by this user")
    created_at: datetime = Field(description="Account creation time (UTC)")
    updated_at: datetime = Field(description="Last modification time (UTC)")

    model_config = {"from_attributes": True}


class LogoutResponse(BaseModel):
    message: str = Field(default="Logged out")


class KeysUpdate(BaseModel):
    """Body of PUT /auth/me/keys. Replaces the caller's whole key set."""
    keys: List[str] = Field(
        default_factory=list,
        max_length=256,
        description="Keys that unlock RESTRICTED devices and macros",
    )
