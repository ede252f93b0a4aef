"""Enumerations shared by the ORM models and API schemas."""

import enum


class AccessTier(str, enum.Enum):
    """
    Governs whether a user, device or macro can be invoked without a key.

    SHARED:      anyone authenticated may invoke it
    RESTRICTED:  only callers holding at least one of its keys
    NONE:        nobody (disabled / administrative)
    """

    SHARED = "SHARED"
    RESTRICTED = "RESTRICTED"
    NONE = "NONE"
