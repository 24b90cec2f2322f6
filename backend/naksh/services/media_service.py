"""
Naksh Backend — Media Service
===============================

What:  Validates user uploads, names them after their owner, and hands them
       to the media host; deletes only the caller's own assets.
How:   Checks run cheapest first: extension, then declared size, then actual
       size. Only a file that passes all three is sent to the media host.
       Limits come from the upload profile, capped by `media_max_file_size`.
Who:   media routes.

Upload kinds → media host profiles:
    avatar  → avatar
    post    → post_video for video extensions, otherwise post_image
    chat    → chat_media

Asset names (the last segment of the public id, under the profile folder):
    avatar_<userId>_<ms>
    post_<userId>_<ms>_<suffix>
    chat_<chatId>_<userId>_<ms>
Deletion is allowed when the name matches one of these for the caller.
"""

import logging
import re
import time
import uuid
from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from naksh.config import settings
from naksh.exceptions import authorization_error, not_found, validation_error
from naksh.models.user import User
from naksh.providers.media import UPLOAD_PROFILES, VIDEO_FORMATS, MediaHost, MediaUpload, UploadProfile
from naksh.services.chat_service import chat_service
from naksh.validation import require_enum, require_uuid

logger = logging.getLogger(__name__)

UPLOAD_KINDS = ("avatar", "post", "chat")

_UUID_PATTERN = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"


def _extension(filename: str) -> str:
    return Path(filename).suffix.lower().lstrip(".")


def _now_ms() -> int:
    return int(time.time() * 1000)


class MediaService:

    def profile_for(self, kind: str, filename: str) -> str:
        if kind == "avatar":
            return "avatar"
        if kind == "chat":
            return "chat_media"
        return "post_video" if _extension(filename) in VIDEO_FORMATS else "post_image"

    def asset_name(self, kind: str, owner_id: str, chat_id: Optional[uuid.UUID] = None) -> str:
        if kind == "avatar":
            return f"avatar_{owner_id}_{_now_ms()}"
        if kind == "chat":
            return f"chat_{chat_id}_{owner_id}_{_now_ms()}"
        return f"post_{owner_id}_{_now_ms()}_{uuid.uuid4().hex[:9]}"

    def owns(self, public_id: str, user_id: str) -> bool:
        """
        Whether `public_id` names an asset uploaded by `user_id`.

        The patterns are anchored on both ends so that one user id being a
        prefix of another ("user_al", "user_alice") never matches.
        """
        name = public_id.rsplit("/", 1)[-1]
        owner = re.escape(user_id)
        patterns = (
            rf"avatar_{owner}_\d+",
            rf"post_{owner}_\d+_[0-9a-f]+",
            rf"chat_{_UUID_PATTERN}_{owner}_\d+",
        )
        return any(re.fullmatch(pattern, name) for pattern in patterns)

    def max_size(self, profile: UploadProfile) -> int:
        return min(profile.max_file_size, settings.media_max_file_size)

    def validate_extension(self, filename: str, profile: UploadProfile) -> str:
        ext = _extension(filename)
        if ext not in profile.allowed_formats:
            raise validation_error(
                f"File type '.{ext}' is not supported. Allowed types: {', '.join(profile.allowed_formats)}",
                {"field": "file", "extension": ext, "allowed": list(profile.allowed_formats)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int, profile: UploadProfile) -> None:
        """
        Declared size (Content-Length of the part) is checked before the
        actual byte count; clients do not always report it honestly.
        """
        limit = self.max_size(profile)
        max_mb = limit / (1024 * 1024)
        if content_length and content_length > limit:
            raise validation_error(
                f"File size exceeds maximum of {max_mb:.0f}MB",
                {"field": "file", "maxBytes": limit, "reportedBytes": content_length},
            )
        if actual_size == 0:
            raise validation_error("Uploaded file is empty", {"field": "file"})
        if actual_size > limit:
            raise validation_error(
                f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB",
                {"field": "file", "maxBytes": limit, "actualBytes": actual_size},
            )

    async def upload(
        self,
        host: MediaHost,
        kind: str,
        owner_id: str,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
        chat_id: Optional[uuid.UUID] = None,
    ) -> MediaUpload:
        require_enum(kind, UPLOAD_KINDS, "upload kind")
        profile_name = self.profile_for(kind, filename)
        profile = UPLOAD_PROFILES[profile_name]
        self.validate_extension(filename, profile)
        self.validate_size(content_length, len(content), profile)
        public_id = self.asset_name(kind, owner_id, chat_id)
        logger.info("Uploading %s (%d bytes) as %s with profile %s", filename, len(content), public_id, profile_name)
        return await host.upload(content, filename, profile_name, public_id=public_id)

    async def upload_avatar(
        self,
        db: AsyncSession,
        host: MediaHost,
        user: User,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> MediaUpload:
        """Upload and make it the user's avatar in the same request."""
        uploaded = await self.upload(host, "avatar", user.id, filename, content, content_length)
        user.avatar_url = uploaded.url
        await db.flush()
        return uploaded

    async def upload_chat_media(
        self,
        db: AsyncSession,
        host: MediaHost,
        user_id: str,
        chat_id: Optional[str],
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> MediaUpload:
        """Chat attachments need a chat the uploader belongs to."""
        if not chat_id:
            raise validation_error("Chat ID is required", {"field": "chatId"})
        chat_uuid = require_uuid(chat_id, "chatId")
        await chat_service.require_member(db, chat_uuid, user_id, "Access denied to this chat")
        return await self.upload(host, "chat", user_id, filename, content, content_length, chat_id=chat_uuid)

    async def delete(
        self, host: MediaHost, user_id: str, public_id: str, resource_type: str = "image"
    ) -> None:
        require_enum(resource_type, ["image", "video"], "resource type")
        if not self.owns(public_id, user_id):
            raise authorization_error("Access denied to this media")
        if not await host.delete(public_id, resource_type):
            raise not_found("Media")
        logger.info("Deleted media %s", public_id)


media_service = MediaService()
