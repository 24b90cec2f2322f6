"""
Naksh Backend — Media Routes
==============================

What:  Multipart uploads to the media host, and deletion.
How:   The file is read into memory (bounded by the profile size cap
       checked in MediaService), validated, then uploaded. Media host
       failures surface as MediaHostError and are classified by the error
       transformer like any other error.

Endpoints:
    POST   /api/media/avatar        upload and set as the caller's avatar
    POST   /api/media/post          post image or video
    POST   /api/media/chat          chat attachment; form field chatId, members only
    DELETE /api/media/{public_id}   ?resourceType=image|video; own assets only
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import get_media_host, require_active_user
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.providers.media import MediaHost
from naksh.responses import created_response, no_content_response
from naksh.schemas.common import to_wire
from naksh.schemas.media import MediaUploadOut
from naksh.services.media_service import media_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/media", tags=["Media"], route_class=BoundaryRoute)


@router.post("/avatar", status_code=201, summary="Upload a new avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    user: User = Depends(require_active_user),
    host: MediaHost = Depends(get_media_host),
    db: AsyncSession = Depends(get_db_session),
):
    content = await file.read()
    uploaded = await media_service.upload_avatar(
        db, host, user, file.filename or "avatar.jpg", content, content_length=file.size
    )
    return created_response(to_wire(MediaUploadOut, uploaded), "Avatar uploaded successfully")


@router.post("/post", status_code=201, summary="Upload a post image or video")
async def upload_post_media(
    file: UploadFile = File(...),
    user: User = Depends(require_active_user),
    host: MediaHost = Depends(get_media_host),
):
    content = await file.read()
    uploaded = await media_service.upload(
        host, "post", user.id, file.filename or "upload", content, content_length=file.size
    )
    logger.info("User %s uploaded post media %s", user.id, uploaded.public_id)
    return created_response(to_wire(MediaUploadOut, uploaded), "Media uploaded successfully")


@router.post("/chat", status_code=201, summary="Upload a chat attachment")
async def upload_chat_media(
    file: UploadFile = File(...),
    chat_id: Optional[str] = Form(default=None, alias="chatId"),
    user: User = Depends(require_active_user),
    host: MediaHost = Depends(get_media_host),
    db: AsyncSession = Depends(get_db_session),
):
    content = await file.read()
    uploaded = await media_service.upload_chat_media(
        db, host, user.id, chat_id, file.filename or "upload", content, content_length=file.size
    )
    logger.info("User %s uploaded chat media %s", user.id, uploaded.public_id)
    return created_response(to_wire(MediaUploadOut, uploaded), "Media uploaded successfully")


@router.delete("/{public_id:path}", status_code=204, summary="Delete an uploaded asset")
async def delete_media(
    public_id: str,
    resource_type: str = Query(default="image", alias="resourceType"),
    user: User = Depends(require_active_user),
    host: MediaHost = Depends(get_media_host),
):
    await media_service.delete(host, user.id, public_id, resource_type)
    return no_content_response()
