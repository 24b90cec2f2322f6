"""
Naksh Backend — User Model
============================

What:  Local profile of an identity-provider account (`users` table).
How:   The primary key IS the identity provider's user id (e.g. Clerk's
       "user_2abc..."), so an authenticated request maps to a row without a
       lookup table.
Who:   Owner of posts, comments, reactions, follows, chats and device tokens.

Suspension:
    `suspended_until` in the future blocks mutating routes
    (dependencies.require_active_user → 403). Moderators set and clear it.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from naksh.database import Base
from naksh.utils import utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Identity provider user id",
    )

    # Both unique; a race on either surfaces as CONFLICT "<field> already exists"
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_moderator: Mapped[bool] = mapped_column(default=False, nullable=False)

    suspended_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow, server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User(id='{self.id}', username='{self.username}')>"
