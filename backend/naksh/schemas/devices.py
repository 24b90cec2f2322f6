import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from naksh.schemas.common import CamelModel


class DeviceTokenCreate(CamelModel):
    token: str = Field(min_length=1, max_length=512)
    platform: str


class DeviceTokenOut(CamelModel):
    id: uuid.UUID
    user_id: str
    token: str
    platform: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
