import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field, computed_field

from naksh.schemas.common import CamelModel


class ChatCreate(CamelModel):
    member_ids: List[str] = Field(min_length=1)
    is_group: bool = False
    title: Optional[str] = Field(default=None, max_length=100)


class ChatOut(CamelModel):
    id: uuid.UUID
    is_group: bool
    title: Optional[str] = None
    created_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    member_ids: List[str] = Field(default_factory=list)


class ChatUpdate(CamelModel):
    title: Optional[str] = Field(default=None, max_length=100)


class ChatMemberAdd(CamelModel):
    member_id: str = Field(min_length=1)


class MessageCreate(CamelModel):
    chat_id: uuid.UUID
    body: Optional[str] = None


class MessageOut(CamelModel):
    id: uuid.UUID
    chat_id: uuid.UUID
    sender_id: str
    body: str
    # Sent time; wire name `sentAt`
    created_at: datetime = Field(serialization_alias="sentAt")
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @computed_field
    @property
    def status(self) -> str:
        if self.read_at is not None:
            return "read"
        if self.delivered_at is not None:
            return "delivered"
        return "sent"
