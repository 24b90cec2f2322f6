from datetime import datetime
from typing import Optional

from pydantic import Field

from naksh.schemas.common import CamelModel


class UserOut(CamelModel):
    id: str
    username: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    is_moderator: bool = False
    suspended_until: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ProfileCreate(CamelModel):
    """Body of POST /api/users/me (first login: create the local profile)."""
    username: str
    email: str
    display_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = None


class ProfileUpdate(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
