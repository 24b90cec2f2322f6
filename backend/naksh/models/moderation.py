"""
Naksh Backend — Moderation Flag Model
=======================================

What:  A user's report against a post, comment or user.
How:   One flag per (reporter, entity_type, entity_id), whatever its status;
       reporting the same thing twice is a CONFLICT.

Status:
    PENDING → VALID | INVALID, and moderators may move a flag between any
    two of the three (decisions can be reverted).
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from naksh.database import Base
from naksh.utils import utcnow


class EntityType(str, enum.Enum):
    POST = "POST"
    COMMENT = "COMMENT"
    USER = "USER"


class FlagStatus(str, enum.Enum):
    PENDING = "PENDING"
    VALID = "VALID"
    INVALID = "INVALID"


class ModerationFlag(Base):
    __tablename__ = "moderation_flags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(16), nullable=False)
    # String: holds a post/comment UUID or a user id
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reporter_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=FlagStatus.PENDING.value
    )
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "reporter_id", "entity_type", "entity_id", name="uq_moderation_flags_reporter_entity"
        ),
        Index("idx_moderation_flags_status", "status"),
        Index("idx_moderation_flags_entity", "entity_type", "entity_id"),
    )

    def __repr__(self) -> str:
        return f"<ModerationFlag(id={self.id}, {self.entity_type}:{self.entity_id}, status='{self.status}')>"
