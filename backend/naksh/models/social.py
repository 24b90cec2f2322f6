"""
Naksh Backend — Reaction and Follow Models
============================================

What:  The two toggled relations between users and content.
How:   Both are keyed by their natural composite key, so a duplicate insert
       (two racing requests) fails on the primary key and is reported as
       CONFLICT by the error transformer.

Reaction:
    PK (post_id, user_id, type). The toggle keeps at most one row per
    (post_id, user_id); the type is part of the key so a changed type is a
    delete + insert, never an in-place update.

Follow:
    PK (follower_id, followee_id), CHECK follower_id <> followee_id.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from naksh.database import Base
from naksh.utils import utcnow


class ReactionType(str, enum.Enum):
    LIKE = "LIKE"
    LOL = "LOL"
    SAD = "SAD"
    LOVE = "LOVE"
    ANGRY = "ANGRY"
    WOW = "WOW"


class Reaction(Base):
    __tablename__ = "reactions"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    type: Mapped[str] = mapped_column(String(16), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_reactions_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Reaction(post_id={self.post_id}, user_id='{self.user_id}', type='{self.type}')>"


class Follow(Base):
    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    followee_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("follower_id <> followee_id", name="ck_follows_not_self"),
        Index("idx_follows_followee", "followee_id"),
    )

    def __repr__(self) -> str:
        return f"<Follow(follower_id='{self.follower_id}', followee_id='{self.followee_id}')>"
