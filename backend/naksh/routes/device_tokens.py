"""
Naksh Backend — Device Token Routes
=====================================

What:  Push token registration for the signed-in user.
How:   201 for a new token; 200 when an existing token was rebound from
       another account.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import require_active_user, require_user_id
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.responses import created_response, no_content_response, success_response
from naksh.schemas.common import to_wire, to_wire_list
from naksh.schemas.devices import DeviceTokenCreate, DeviceTokenOut
from naksh.services.device_token_service import device_token_service

router = APIRouter(prefix="/api/device-tokens", tags=["Device Tokens"], route_class=BoundaryRoute)


@router.post("", status_code=201, summary="Register a push token")
async def register_token(
    body: DeviceTokenCreate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    device_token, created = await device_token_service.register(db, user.id, body.token, body.platform)
    data = to_wire(DeviceTokenOut, device_token)
    if created:
        return created_response(data, "Device token registered")
    return success_response(data, "Device token reassigned")


@router.get("", summary="The caller's push tokens")
async def list_tokens(
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    return success_response(to_wire_list(DeviceTokenOut, await device_token_service.list_for_user(db, user_id)))


@router.delete("/{token}", status_code=204, summary="Unregister a push token")
async def unregister_token(
    token: str,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    await device_token_service.unregister(db, user_id, token)
    return no_content_response()
