"""Column types that differ between PostgreSQL and SQLite."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Enum
from sqlalchemy.dialects.postgresql import JSONB

from app.models.enums import AccessTier

# JSONB on PostgreSQL, plain JSON (TEXT) elsewhere
JSONDocument = JSON().with_variant(JSONB(), "postgresql")

# Stored as a native enum named after the historical Prisma type
AccessTierType = Enum(
    AccessTier,
    name="accesstype",
    values_callable=lambda members: [m.value for m in members],
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
