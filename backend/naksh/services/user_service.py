"""
Naksh Backend — User Service
==============================

What:  The local profile kept for each identity-provider user.
How:   The identity provider owns authentication; this service owns the
       profile row created on first login and its later edits. Username and
       email uniqueness is checked up front for a clear message and enforced
       again by the unique constraints.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import conflict, not_found
from naksh.models.user import User
from naksh.schemas.users import ProfileCreate, ProfileUpdate
from naksh.validation import require_email, require_string_length, require_username

logger = logging.getLogger(__name__)

MAX_BIO_LENGTH = 500
MAX_DISPLAY_NAME_LENGTH = 100


class UserService:

    async def get_user(self, db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise not_found("User")
        return user

    async def username_available(self, db: AsyncSession, username: str) -> bool:
        require_username(username)
        taken = await db.scalar(select(User.id).where(User.username == username))
        return taken is None

    async def _ensure_unique(self, db: AsyncSession, field: str, column, value: str, user_id: str) -> None:
        owner = await db.scalar(select(User.id).where(column == value))
        if owner is not None and owner != user_id:
            raise conflict(f"{field} already exists", {"field": field, "constraint": "unique"})

    async def create_profile(self, db: AsyncSession, user_id: str, data: ProfileCreate) -> User:
        if await db.get(User, user_id) is not None:
            raise conflict("Profile already exists")

        username = require_username(data.username)
        email = require_email(data.email.strip().lower())
        require_string_length(data.display_name, "Display name", max_length=MAX_DISPLAY_NAME_LENGTH)
        require_string_length(data.bio, "Bio", max_length=MAX_BIO_LENGTH)
        await self._ensure_unique(db, "username", User.username, username, user_id)
        await self._ensure_unique(db, "email", User.email, email, user_id)

        user = User(
            id=user_id,
            username=username,
            email=email,
            display_name=data.display_name or username,
            bio=data.bio,
        )
        db.add(user)
        await db.flush()
        logger.info("Profile created for %s (%s)", user_id, username)
        return user

    async def update_me(self, db: AsyncSession, user: User, data: ProfileUpdate) -> User:
        """Apply only the fields present in the request body."""
        changes = data.model_dump(exclude_unset=True)

        if "username" in changes:
            username = require_username(changes["username"])
            await self._ensure_unique(db, "username", User.username, username, user.id)
            user.username = username
        if "email" in changes:
            email = require_email((changes["email"] or "").strip().lower())
            await self._ensure_unique(db, "email", User.email, email, user.id)
            user.email = email
        if "display_name" in changes:
            user.display_name = require_string_length(
                changes["display_name"], "Display name", max_length=MAX_DISPLAY_NAME_LENGTH
            )
        if "bio" in changes:
            user.bio = require_string_length(changes["bio"], "Bio", max_length=MAX_BIO_LENGTH)
        if "avatar_url" in changes:
            user.avatar_url = changes["avatar_url"]

        await db.flush()
        return user


user_service = UserService()
