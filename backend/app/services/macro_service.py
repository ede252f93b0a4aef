"""
MacroRelay Backend — Macro Invocation
=======================================

What:  Resolves a macro by endpoint, checks the caller against the
       access-control gate, and proxies the call to the trigger service.
Who:   Called by POST /api/macros/{endpoint}/trigger.

Both the macro and the device it belongs to must admit the caller's keys.
The database session is closed before the outbound call, so no connection
is held while the trigger service responds.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.exceptions import AccessDeniedError, DatabaseError, NotFoundError
from app.models.device import Macro
from app.schemas.auth import UserResponse
from app.services.access import can_invoke
from app.services.trigger_client import TriggerClient, TriggerResult

logger = logging.getLogger(__name__)


class MacroService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        trigger_client: TriggerClient,
    ):
        self._session_factory = session_factory
        self._trigger = trigger_client

    async def invoke(self, caller: UserResponse, endpoint: str) -> TriggerResult:
        """
        Raises:
            NotFoundError: no macro with this endpoint
            AccessDeniedError: device or macro refuses the caller's keys
            UpstreamError: the trigger service failed
        """
        try:
            async with self._session_factory() as db:
                macro = await db.scalar(
                    select(Macro)
                    .where(Macro.endpoint == endpoint)
                    .options(selectinload(Macro.device))
                )
        except SQLAlchemyError as e:
            logger.error("Macro lookup failed: %s", e, exc_info=True)
            raise DatabaseError(context={"operation": "invoke_macro"})

        if macro is None:
            raise NotFoundError(resource="macro", resource_id=endpoint)

        if not can_invoke(caller.keys, macro.device):
            logger.info("User %s denied by device %s", caller.id, macro.device_id)
            raise AccessDeniedError(resource="device", resource_id=macro.device_id)
        if not can_invoke(caller.keys, macro):
            logger.info("User %s denied by macro %s", caller.id, endpoint)
            raise AccessDeniedError(resource="macro", resource_id=endpoint)

        logger.info("User %s triggering %s on device %s", caller.id, endpoint, macro.device_id)
        return await self._trigger.trigger(macro.device_id, macro.endpoint, macro.params)
