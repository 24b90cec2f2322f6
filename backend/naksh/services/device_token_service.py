"""
Naksh Backend — Device Token Service
======================================

What:  Registering push-notification tokens for the mobile apps.
How:   Tokens are globally unique. Registering a token already held by
       another user rebinds it to the caller (the device changed hands);
       registering one the caller already holds is a CONFLICT.
"""

import logging
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import conflict, not_found
from naksh.models.device_token import DeviceToken, Platform
from naksh.utils import utcnow
from naksh.validation import require_enum, require_string_length

logger = logging.getLogger(__name__)

PLATFORMS = [p.value for p in Platform]


class DeviceTokenService:

    async def register(
        self,
        db: AsyncSession,
        user_id: str,
        token: str,
        platform: str,
    ) -> Tuple[DeviceToken, bool]:
        """
        Register `token` for `user_id`.

        Returns:
            (device_token, created): created is False when an existing row
            was rebound from another user.
        """
        token = token.strip() if isinstance(token, str) else token
        require_string_length(token, "Token", 1, 512, required=True)
        platform = require_enum(str(platform).lower(), PLATFORMS, "platform")

        existing = await db.scalar(select(DeviceToken).where(DeviceToken.token == token))
        if existing is not None:
            if existing.user_id == user_id:
                raise conflict(
                    "Device token already registered for this user",
                    {"tokenId": str(existing.id)},
                )
            previous_owner = existing.user_id
            existing.user_id = user_id
            existing.platform = platform
            existing.updated_at = utcnow()
            await db.flush()
            logger.info("Device token %s rebound from %s to %s", existing.id, previous_owner, user_id)
            return existing, False

        device_token = DeviceToken(user_id=user_id, token=token, platform=platform)
        db.add(device_token)
        await db.flush()
        return device_token, True

    async def unregister(self, db: AsyncSession, user_id: str, token: str) -> None:
        device_token = await db.scalar(
            select(DeviceToken).where(DeviceToken.token == token, DeviceToken.user_id == user_id)
        )
        if device_token is None:
            raise not_found("Device token")
        await db.delete(device_token)
        await db.flush()

    async def list_for_user(self, db: AsyncSession, user_id: str) -> List[DeviceToken]:
        result = await db.execute(
            select(DeviceToken)
            .where(DeviceToken.user_id == user_id)
            .order_by(DeviceToken.created_at.desc())
        )
        return list(result.scalars().all())


device_token_service = DeviceTokenService()
