"""
MacroRelay Backend — Device Registry
======================================

What:  Registers devices for their owner, attaches macros to them and lists
       what a user owns.
Who:   Called by the /api/devices route handlers with the authenticated user.

Ownership:
    Devices belong to the user that registered them. Adding a macro to a
    device the caller does not own reports the device as not found rather
    than forbidden, so device ids of other users cannot be probed.

Every write runs `normalize_keys` so that stored key sets are sorted,
unique, and only present on RESTRICTED resources.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.exceptions import ConflictError, DatabaseError, NotFoundError
from app.models.device import Device, Macro
from app.models.enums import AccessTier
from app.schemas.auth import UserResponse
from app.schemas.device import DeviceResponse, MacroResponse
from app.services.access import normalize_keys

logger = logging.getLogger(__name__)


class DeviceService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_device(
        self,
        owner: UserResponse,
        device_id: str,
        name: str,
        access: AccessTier = AccessTier.RESTRICTED,
        keys: Optional[List[str]] = None,
    ) -> DeviceResponse:
        """
        Raises:
            ValidationError: keys on a non-RESTRICTED device
            ConflictError: device id already registered
        """
        keys = normalize_keys(access, keys or [])

        try:
            async with self._session_factory.begin() as db:
                if await db.get(Device, device_id) is not None:
                    raise ConflictError(resource="device", field="id")
                device = Device(id=device_id, name=name, access=access, keys=keys, user_id=owner.id)
                db.add(device)
                await db.flush()
        except IntegrityError:
            raise ConflictError(resource="device", field="id")
        except SQLAlchemyError as e:
            logger.error("Device registration failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "create_device"})

        logger.info("User %s registered device %s", owner.id, device_id)
        return DeviceResponse(
            id=device.id,
            name=device.name,
            access=device.access,
            keys=device.keys,
            created_at=device.created_at,
            updated_at=device.updated_at,
            macros=[],
        )

    async def list_devices(self, owner: UserResponse) -> List[DeviceResponse]:
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    select(Device)
                    .where(Device.user_id == owner.id)
                    .options(selectinload(Device.macros))
                    .order_by(Device.created_at, Device.id)
                )
                devices = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Device listing failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "list_devices"})

        return [DeviceResponse.model_validate(device) for device in devices]

    async def add_macro(
        self,
        owner: UserResponse,
        device_id: str,
        endpoint: str,
        access: AccessTier = AccessTier.RESTRICTED,
        keys: Optional[List[str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> MacroResponse:
        """
        Raises:
            ValidationError: keys on a non-RESTRICTED macro
            NotFoundError: device missing or owned by someone else
            ConflictError: endpoint already in use
        """
        keys = normalize_keys(access, keys or [])

        try:
            async with self._session_factory.begin() as db:
                device = await db.get(Device, device_id)
                if device is None or device.user_id != owner.id:
                    raise NotFoundError(resource="device", resource_id=device_id)
                if await db.get(Macro, endpoint) is not None:
                    raise ConflictError(resource="macro", field="endpoint")

                macro = Macro(
                    endpoint=endpoint,
                    device_id=device.id,
                    access=access,
                    keys=keys,
                    params=params,
                )
                db.add(macro)
                await db.flush()
        except IntegrityError:
            raise ConflictError(resource="macro", field="endpoint")
        except SQLAlchemyError as e:
            logger.error("Macro registration failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "add_macro"})

        logger.info("Macro %s added to device %s", endpoint, device_id)
        return MacroResponse.model_validate(macro)
