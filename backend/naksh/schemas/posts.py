"""
Naksh Backend — Post and Comment Schemas
==========================================

Enum-valued fields (visibility, media type) are plain strings here and are
checked in the service, so the caller gets the same
"Invalid <field>. Allowed values: ..." message as every other enum check.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from naksh.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class PostMediaIn(CamelModel):
    media_url: Optional[str] = None
    type: Optional[str] = None
    public_id: Optional[str] = None
    duration_seconds: Optional[float] = None


class PostCreate(CamelModel):
    caption: Optional[str] = None
    visibility: str = "PUBLIC"
    location_name: Optional[str] = Field(default=None, max_length=200)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    media: List[PostMediaIn] = Field(default_factory=list)


class PostUpdate(CamelModel):
    """Only the fields present in the body are changed."""
    caption: Optional[str] = None
    visibility: Optional[str] = None
    location_name: Optional[str] = Field(default=None, max_length=200)


class CommentCreate(CamelModel):
    post_id: uuid.UUID
    body: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None


class CommentUpdate(CamelModel):
    body: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class PostMediaOut(CamelModel):
    id: uuid.UUID
    media_url: str
    public_id: Optional[str] = None
    type: str
    ordering: int
    duration_seconds: Optional[float] = None


class PostOut(CamelModel):
    id: uuid.UUID
    author_id: str
    caption: Optional[str] = None
    visibility: str
    location_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    expires_at: datetime
    media: List[PostMediaOut] = Field(default_factory=list)


class CommentOut(CamelModel):
    id: uuid.UUID
    post_id: uuid.UUID
    author_id: str
    parent_id: Optional[uuid.UUID] = None
    body: str
    created_at: Optional[datetime] = None
    edited_at: Optional[datetime] = None
