"""
MacroRelay Backend — Device & Macro Models
============================================

What:  ORM models for the `devices` and `macros` tables.
Who:   Used by DeviceService (registration/listing) and MacroService
       (invocation).

Table notes:
    devices.id       caller-supplied; it is also the device id the external
                     trigger service knows, so it is used verbatim in URLs
    macros.endpoint  globally unique routing key and the action name sent to
                     the trigger service
    macros.params    optional JSON object sent as query parameters
    *.keys           JSON list of key strings; non-empty only for RESTRICTED
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.enums import AccessTier
from app.models.types import AccessTierType, JSONDocument, utcnow
from app.models.user import User


class Device(Base):
    __tablename__ = "devices"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    access: Mapped[AccessTier] = mapped_column(
        AccessTierType,
        nullable=False,
        default=AccessTier.RESTRICTED,
    )
    keys: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
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
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    user: Mapped[User] = relationship(back_populates="devices")
    macros: Mapped[List["Macro"]] = relationship(
        back_populates="device",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Macro.endpoint",
    )

    def __repr__(self) -> str:
        return f"<Device(id='{self.id}', name='{self.name}', access={self.access.value})>"


class Macro(Base):
    __tablename__ = "macros"

    endpoint: Mapped[str] = mapped_column(String(255), primary_key=True)
    device_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access: Mapped[AccessTier] = mapped_column(
        AccessTierType,
        nullable=False,
        default=AccessTier.RESTRICTED,
    )
    keys: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    params: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument, nullable=True)

    device: Mapped[Device] = relationship(back_populates="macros")

    def __repr__(self) -> str:
        return f"<Macro(endpoint='{self.endpoint}', device_id='{self.device_id}')>"
