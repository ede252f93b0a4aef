"""
MacroRelay Backend — ORM Models
================================

Importing this package registers every table on `Base.metadata`
(used by Alembic autogenerate and `create_tables()`).
"""

from app.models.enums import AccessTier
from app.models.user import Session, User
from app.models.device import Device, Macro

__all__ = ["AccessTier", "User", "Session", "Device", "Macro"]
