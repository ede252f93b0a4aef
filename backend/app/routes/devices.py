"""
MacroRelay Backend — Device & Macro Route Handlers
====================================================

What:  Device registration/listing for the authenticated owner, macro
       registration, and the macro trigger proxy.

Trigger responses:
    The trigger service's answer is relayed as-is: same status code, body
    and content type, whether it succeeded or not. Only failures to reach
    the service at all are reported in our own error format (502 / 504).
"""

import logging

from fastapi import APIRouter, Depends, Response

from app.dependencies import get_current_user, get_device_service, get_macro_service
from app.schemas.auth import UserResponse
from app.schemas.common import ErrorResponse
from app.schemas.device import (
    DeviceCreate,
    DeviceListResponse,
    DeviceResponse,
    MacroCreate,
    MacroResponse,
)
from app.services.device_service import DeviceService
from app.services.macro_service import MacroService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Devices"])


@router.get(
    "/devices",
    response_model=DeviceListResponse,
    responses={401: {"description": "No valid session", "model": ErrorResponse}},
    summary="List the caller's devices and their macros",
)
async def list_devices(
    user: UserResponse = Depends(get_current_user),
    devices: DeviceService = Depends(get_device_service),
) -> DeviceListResponse:
    return DeviceListResponse(devices=await devices.list_devices(user))


@router.post(
    "/devices",
    status_code=201,
    response_model=DeviceResponse,
    responses={
        400: {"description": "Invalid device definition", "model": ErrorResponse},
        401: {"description": "No valid session", "model": ErrorResponse},
        409: {"description": "Device id already registered", "model": ErrorResponse},
    },
    summary="Register a device",
)
async def create_device(
    body: DeviceCreate,
    user: UserResponse = Depends(get_current_user),
    devices: DeviceService = Depends(get_device_service),
) -> DeviceResponse:
    return await devices.create_device(
        owner=user,
        device_id=body.id,
        name=body.name,
        access=body.access,
        keys=body.keys,
    )


@router.post(
    "/devices/{device_id}/macros",
    status_code=201,
    response_model=MacroResponse,
    responses={
        400: {"description": "Invalid macro definition", "model": ErrorResponse},
        401: {"description": "No valid session", "model": ErrorResponse},
        404: {"description": "Device not found", "model": ErrorResponse},
        409: {"description": "Endpoint already in use", "model": ErrorResponse},
    },
    summary="Attach a macro to one of the caller's devices",
)
async def add_macro(
    device_id: str,
    body: MacroCreate,
    user: UserResponse = Depends(get_current_user),
    devices: DeviceService = Depends(get_device_service),
) -> MacroResponse:
    return await devices.add_macro(
        owner=user,
        device_id=device_id,
        endpoint=body.endpoint,
        access=body.access,
        keys=body.keys,
        params=body.params,
    )


@router.post(
    "/macros/{endpoint}/trigger",
    responses={
        401: {"description": "No valid session", "model": ErrorResponse},
        403: {"description": "Caller's keys do not admit this macro", "model": ErrorResponse},
        404: {"description": "Macro not found", "model": ErrorResponse},
        502: {"description": "Trigger service unreachable", "model": ErrorResponse},
        504: {"description": "Trigger service timed out", "model": ErrorResponse},
    },
    summary="Invoke a macro through the trigger service",
)
async def trigger_macro(
    endpoint: str,
    user: UserResponse = Depends(get_current_user),
    macros: MacroService = Depends(get_macro_service),
) -> Response:
    result = await macros.invoke(user, endpoint)
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.content_type,
    )
