"""
MacroRelay Backend — Device & Macro Schemas
=============================================

What:  Request/response models for /api/devices and /api/macros.

Identifiers (device ids, macro endpoints) end up as URL path segments, both
in our routes and in the outbound trigger URL, so they may not contain
slashes or whitespace. The key/tier invariant is enforced by the service
layer (`normalize_keys`), not here.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.enums import AccessTier

IDENTIFIER_PATTERN = r"^[^/\s]+$"


class DeviceCreate(BaseModel):
    id: str = Field(
        min_length=1, max_length=255, pattern=IDENTIFIER_PATTERN,
        description="Device id as known to the trigger service",
    )
    name: str = Field(min_length=1, max_length=255, description="Display name")
    access: AccessTier = Field(default=AccessTier.RESTRICTED)
    keys: List[str] = Field(default_factory=list, description="Keys that unlock a RESTRICTED device")


class MacroCreate(BaseModel):
    endpoint: str = Field(
        min_length=1, max_length=255, pattern=IDENTIFIER_PATTERN,
        description="Unique routing key, also the trigger action name",
    )
    access: AccessTier = Field(default=AccessTier.RESTRICTED)
    keys: List[str] = Field(default_factory=list)
    params: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Stored query parameters sent with every trigger call",
    )


class MacroResponse(BaseModel):
    endpoint: str
    device_id: str
    access: AccessTier
    keys: List[str] = Field(default_factory=list)
    params: Optional[Dict[str, Any]] = None

    model_config = {"from_attributes": True}


class DeviceResponse(BaseModel):
    id: str
    name: str
    access: AccessTier
    keys: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    macros: List[MacroResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class DeviceListResponse(BaseModel):
    devices: List[DeviceResponse] = Field(description="Devices owned by the caller")
