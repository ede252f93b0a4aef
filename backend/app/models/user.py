"""
MacroRelay Backend — User & Session Models
============================================

What:  ORM models for the `users` and `sessions` tables.
Who:   Used by the Authenticator, SessionValidator and DeviceService.

Table notes:
    users.name       unique; enforced by the database as well as by the
                     sign-up pre-check
    users.password   argon2id hash (PHC string); never serialized
    users.keys       JSON list of bearer key strings, kept sorted and unique
    sessions.id      opaque random token; the primary key is the only lookup
    sessions.user_id ON DELETE CASCADE, so removing a user revokes its sessions

Sessions are immutable: they are inserted at login/sign-up and deleted at
logout. There is no expiry column.
"""

import secrets
import uuid
from datetime import datetime
from typing import List, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import AccessTier
from app.models.types import AccessTierType, JSONDocument, utcnow

if TYPE_CHECKING:
    from app.models.device import Device


def new_session_token() -> str:
    """256 bits of randomness, URL-safe (43 characters)."""
    return secrets.token_urlsafe(32)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # The column keeps its historical name; the attribute says what it holds.
    password_hash: Mapped[str] = mapped_column("password", String(255), nullable=False)

    access: Mapped[AccessTier] = mapped_column(
        AccessTierType,
        nullable=False,
        default=AccessTier.RESTRICTED,
    )
    keys: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    sessions: Mapped[List["Session"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    devices: Mapped[List["Device"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        # no password_hash
        return f"<User(id={self.id}, name='{self.name}', access={self.access.value})>"


class Session(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_session_token)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    user: Mapped[User] = relationship(back_populates="sessions")

    def __repr__(self) -> str:
        return f"<Session(user_id={self.user_id}, created_at={self.created_at})>"
