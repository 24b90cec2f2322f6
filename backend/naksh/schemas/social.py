import uuid
from datetime import datetime
from typing import Optional

from naksh.schemas.common import CamelModel


class ReactionToggle(CamelModel):
    """Body of POST /api/reactions; `type` is checked against ReactionType in the service."""
    post_id: uuid.UUID
    type: str


class ReactionOut(CamelModel):
    post_id: uuid.UUID
    user_id: str
    type: str
    created_at: Optional[datetime] = None


class FollowCreate(CamelModel):
    followee_id: str


class FollowOut(CamelModel):
    follower_id: str
    followee_id: str
    created_at: Optional[datetime] = None
