import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from naksh.schemas.common import CamelModel


class FlagCreate(CamelModel):
    entity_type: str
    entity_id: str
    reason: Optional[str] = Field(default=None, max_length=1000)


class FlagStatusUpdate(CamelModel):
    status: str
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class SuspendRequest(CamelModel):
    hours: int = Field(ge=1, le=24 * 365)
    reason: Optional[str] = Field(default=None, max_length=1000)


class FlagOut(CamelModel):
    id: uuid.UUID
    entity_type: str
    entity_id: str
    reporter_id: str
    reason: Optional[str] = None
    status: str
    admin_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

