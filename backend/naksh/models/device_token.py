"""
Naksh Backend — Device Token Model
====================================

What:  Push-notification tokens registered by the mobile apps.
How:   A token is globally unique. When a device changes hands (logout on
       one account, login on another) the token row is rebound to the new
       user instead of being rejected.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from naksh.database import Base
from naksh.utils import utcnow


class Platform(str, enum.Enum):
    IOS = "ios"
    ANDROID = "android"


class DeviceToken(Base):
    __tablename__ = "device_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_device_tokens_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<DeviceToken(id={self.id}, user_id='{self.user_id}', platform='{self.platform}')>"
