"""
MacroRelay Backend — Access-Control Gate
==========================================

What:  Decides whether a caller holding a set of keys may invoke a device or
       macro, and keeps stored key sets consistent with their tier.

Decision table (can_invoke):
    NONE        → never
    SHARED      → always, even for a caller with no keys
    RESTRICTED  → iff the caller shares at least one key with the resource

A RESTRICTED resource with no keys is unreachable until a key is
provisioned. That is intended.
"""

from typing import Iterable, List, Protocol

from app.exceptions import ValidationError
from app.models.enums import AccessTier


class Guarded(Protocol):
    access: AccessTier
    keys: List[str]


def can_invoke(actor_keys: Iterable[str], resource: Guarded) -> bool:
    if resource.access == AccessTier.NONE:
        return False
    if resource.access == AccessTier.SHARED:
        return True
    return not set(actor_keys).isdisjoint(resource.keys or ())


def normalize_keys(access: AccessTier, keys: Iterable[str], field: str = "keys") -> List[str]:
    """
    Return `keys` as a sorted, de-duplicated list.

    Raises ValidationError for blank keys, or for any keys on a tier other
    than RESTRICTED.
    """
    normalized = sorted(set(keys))
    if any(not key.strip() for key in normalized):
        raise ValidationError(message="Keys must be non-empty strings", field=field)
    if normalized and access != AccessTier.RESTRICTED:
        raise ValidationError(
            message=f"Keys can only be set on RESTRICTED resources (got {access.value})",
            field=field,
        )
    return normalized
