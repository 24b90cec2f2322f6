"""
Naksh Backend — Chat Service
==============================

What:  Creating conversations and checking who belongs to them.
How:   The creator is always a member. A direct chat has exactly two members
       and at most one exists per pair; a group chat needs a title.
       Members manage group membership; any member may rename or delete.
Who:   chats routes; MessageService uses require_member().
"""

import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import authorization_error, conflict, not_found, validation_error
from naksh.models.chat import Chat, ChatMember, Message
from naksh.models.user import User

logger = logging.getLogger(__name__)


class ChatService:

    async def member_ids(self, db: AsyncSession, chat_id: uuid.UUID) -> List[str]:
        result = await db.execute(
            select(ChatMember.member_id)
            .where(ChatMember.chat_id == chat_id)
            .order_by(ChatMember.joined_at, ChatMember.member_id)
        )
        return list(result.scalars().all())

    async def is_member(self, db: AsyncSession, chat_id: uuid.UUID, user_id: str) -> bool:
        return await db.get(ChatMember, (chat_id, user_id)) is not None

    async def require_member(
        self,
        db: AsyncSession,
        chat_id: uuid.UUID,
        user_id: str,
        message: str = "Not authorized to access this chat",
    ) -> Chat:
        """The chat, provided it exists (NOT_FOUND) and `user_id` belongs to it (AUTHORIZATION)."""
        chat = await db.get(Chat, chat_id)
        if chat is None:
            raise not_found("Chat")
        if not await self.is_member(db, chat_id, user_id):
            raise authorization_error(message)
        return chat

    async def _find_direct_chat(self, db: AsyncSession, user_ids: Iterable[str]) -> Optional[uuid.UUID]:
        result = await db.execute(
            select(ChatMember.chat_id)
            .join(Chat, Chat.id == ChatMember.chat_id)
            .where(Chat.is_group.is_(False), ChatMember.member_id.in_(list(user_ids)))
            .group_by(ChatMember.chat_id)
            .having(func.count(ChatMember.member_id) == 2)
            .limit(1)
        )
        return result.scalars().first()

    async def create_chat(
        self,
        db: AsyncSession,
        creator_id: str,
        member_ids: List[str],
        is_group: bool = False,
        title: Optional[str] = None,
    ) -> Tuple[Chat, List[str]]:
        """
        Create a direct or group chat.

        Raises:
            APIError(VALIDATION): fewer than two members, a direct chat with
                                  more than two, or a group without a title
            APIError(NOT_FOUND):  any member has no local user
            APIError(CONFLICT):   a direct chat between the pair exists
                                  (details carry its chatId)
        """
        ids = list(dict.fromkeys([creator_id, *member_ids]))
        if len(ids) < 2:
            raise validation_error("A chat needs at least 2 members")

        title = title.strip() if title else None
        if is_group and not title:
            raise validation_error("Title is required for group chats")
        if not is_group and len(ids) != 2:
            raise validation_error("Direct chats must have exactly 2 members")

        found = await db.scalar(select(func.count()).select_from(User).where(User.id.in_(ids)))
        if found != len(ids):
            raise not_found("User")

        if not is_group:
            existing = await self._find_direct_chat(db, ids)
            if existing is not None:
                raise conflict("Chat already exists between these users", {"chatId": str(existing)})

        chat = Chat(is_group=is_group, title=title)
        db.add(chat)
        await db.flush()
        db.add_all(ChatMember(chat_id=chat.id, member_id=member_id) for member_id in ids)
        await db.flush()
        logger.info("Chat %s created by %s with %d members", chat.id, creator_id, len(ids))
        return chat, ids

    async def get_chat(self, db: AsyncSession, chat_id: uuid.UUID, user_id: str) -> Tuple[Chat, List[str]]:
        chat = await self.require_member(db, chat_id, user_id)
        return chat, await self.member_ids(db, chat_id)

    async def list_chats(
        self,
        db: AsyncSession,
        user_id: str,
        page: int,
        limit: int,
    ) -> Tuple[List[Tuple[Chat, List[str]]], int]:
        """The user's chats, most recently active first."""
        membership = ChatMember.member_id == user_id
        result = await db.execute(
            select(Chat)
            .join(ChatMember, ChatMember.chat_id == Chat.id)
            .where(membership)
            .order_by(func.coalesce(Chat.last_message_at, Chat.created_at).desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        chats = list(result.scalars().all())
        total = await db.scalar(select(func.count()).select_from(ChatMember).where(membership))
        return [(chat, await self.member_ids(db, chat.id)) for chat in chats], total or 0

    # ── Administration ────────────────────────────────────────────────────

    async def update_chat(
        self, db: AsyncSession, chat_id: uuid.UUID, user_id: str, title: Optional[str]
    ) -> Tuple[Chat, List[str]]:
        chat = await self.require_member(db, chat_id, user_id)
        title = title.strip() if title else None
        if chat.is_group and not title:
            raise validation_error("Title is required for group chats")
        chat.title = title
        await db.flush()
        return chat, await self.member_ids(db, chat_id)

    async def delete_chat(self, db: AsyncSession, chat_id: uuid.UUID, user_id: str) -> None:
        """Any member may delete a chat; its members and messages go with it."""
        chat = await self.require_member(db, chat_id, user_id)
        await db.execute(delete(Message).where(Message.chat_id == chat_id))
        await db.execute(delete(ChatMember).where(ChatMember.chat_id == chat_id))
        await db.delete(chat)
        await db.flush()
        logger.info("Chat %s deleted by %s", chat_id, user_id)

    async def list_members(self, db: AsyncSession, chat_id: uuid.UUID, user_id: str) -> List[User]:
        await self.require_member(db, chat_id, user_id)
        result = await db.execute(
            select(User)
            .join(ChatMember, ChatMember.member_id == User.id)
            .where(ChatMember.chat_id == chat_id)
            .order_by(ChatMember.joined_at, User.id)
        )
        return list(result.scalars().all())

    async def add_member(
        self, db: AsyncSession, chat_id: uuid.UUID, added_by: str, member_id: str
    ) -> ChatMember:
        """
        Add a user to a group chat.

        Raises:
            APIError(NOT_FOUND):     chat or user absent
            APIError(AUTHORIZATION): `added_by` is not a member
            APIError(VALIDATION):    the chat is a direct chat
            APIError(CONFLICT):      already a member
        """
        chat = await self.require_member(db, chat_id, added_by)
        if not chat.is_group:
            raise validation_error("Members can only be added to group chats")
        if await self.is_member(db, chat_id, member_id):
            raise conflict("User is already a member")
        if await db.get(User, member_id) is None:
            raise not_found("User")

        member = ChatMember(chat_id=chat_id, member_id=member_id)
        db.add(member)
        await db.flush()
        logger.info("User %s added to chat %s by %s", member_id, chat_id, added_by)
        return member

    async def remove_member(
        self, db: AsyncSession, chat_id: uuid.UUID, removed_by: str, member_id: str
    ) -> None:
        """Members may remove anyone from a group chat, and anyone may leave one."""
        chat = await db.get(Chat, chat_id)
        if chat is None:
            raise not_found("Chat")
        if removed_by != member_id and not await self.is_member(db, chat_id, removed_by):
            raise authorization_error("Not authorized to access this chat")
        membership = await db.get(ChatMember, (chat_id, member_id))
        if membership is None:
            raise not_found("Chat member")
        if not chat.is_group:
            raise validation_error("Members cannot be removed from a direct chat; delete the chat instead")

        await db.delete(membership)
        await db.flush()
        logger.info("User %s removed from chat %s by %s", member_id, chat_id, removed_by)


chat_service = ChatService()
