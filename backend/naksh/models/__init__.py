# Models package init
"""
Naksh Backend — ORM Models
============================

Importing this package registers every table on `Base.metadata`
(used by Alembic autogenerate and by the test suite's create_all).
"""

from naksh.models.chat import Chat, ChatMember, Message
from naksh.models.device_token import DeviceToken, Platform
from naksh.models.moderation import EntityType, FlagStatus, ModerationFlag
from naksh.models.post import Comment, MediaType, Post, PostMedia, Visibility
from naksh.models.social import Follow, Reaction, ReactionType
from naksh.models.user import User

__all__ = [
    "Chat",
    "ChatMember",
    "Comment",
    "DeviceToken",
    "EntityType",
    "FlagStatus",
    "Follow",
    "MediaType",
    "Message",
    "ModerationFlag",
    "Platform",
    "Post",
    "PostMedia",
    "Reaction",
    "ReactionType",
    "User",
]
