"""
Naksh Backend — Message Service
=================================

What:  Sending messages, moving them through Sent → Delivered → Read, and
       replacing deleted ones with a "[Message deleted]" tombstone.
How:   Delivery state is two timestamps that only move forward. Marking is
       idempotent: repeating a mark, or marking your own message, changes
       nothing and reports `changed=False` instead of failing.
Who:   messages and chats routes.

Invariant:
    created_at <= delivered_at <= read_at  (when set)
    mark_read() backfills delivered_at so read always implies delivered.

Transaction:
    send() inserts the message and bumps chat.last_message_at in the same
    session; both commit together.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import authorization_error, not_found
from naksh.models.chat import ChatMember, Message
from naksh.services.chat_service import chat_service
from naksh.utils import utcnow
from naksh.validation import require_string_length

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000
DELETED_MESSAGE_BODY = "[Message deleted]"


@dataclass
class DeliveryResult:
    changed: bool
    message: Message


class MessageService:

    async def send(self, db: AsyncSession, chat_id: uuid.UUID, sender_id: str, body: str | None) -> Message:
        text = body.strip() if isinstance(body, str) else body
        require_string_length(text, "Message body", 1, MAX_MESSAGE_LENGTH, required=True)
        chat = await chat_service.require_member(
            db, chat_id, sender_id, "Not authorized to send messages to this chat"
        )

        now = utcnow()
        message = Message(chat_id=chat_id, sender_id=sender_id, body=text, created_at=now)
        db.add(message)
        chat.last_message_at = now
        await db.flush()
        logger.info("Message %s sent to chat %s", message.id, chat_id)
        return message

    async def list_messages(
        self,
        db: AsyncSession,
        chat_id: uuid.UUID,
        user_id: str,
        page: int,
        limit: int,
    ) -> Tuple[List[Message], int]:
        """
        One page of history. Pages count back from the newest message;
        messages within a page are oldest first.
        """
        await chat_service.require_member(db, chat_id, user_id)
        result = await db.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        messages = list(result.scalars().all())
        messages.reverse()
        total = await db.scalar(
            select(func.count()).select_from(Message).where(Message.chat_id == chat_id)
        )
        return messages, total or 0

    async def get_message(self, db: AsyncSession, message_id: uuid.UUID, user_id: str) -> Message:
        """The message, if `user_id` is a member of its chat."""
        message = await db.get(Message, message_id)
        if message is None:
            raise not_found("Message")
        if not await chat_service.is_member(db, message.chat_id, user_id):
            raise authorization_error("Not authorized to access this message")
        return message

    async def mark_delivered(self, db: AsyncSession, message_id: uuid.UUID, user_id: str) -> DeliveryResult:
        message = await self.get_message(db, message_id, user_id)
        if message.sender_id == user_id or message.delivered_at is not None:
            return DeliveryResult(False, message)
        message.delivered_at = utcnow()
        await db.flush()
        return DeliveryResult(True, message)

    async def mark_read(self, db: AsyncSession, message_id: uuid.UUID, user_id: str) -> DeliveryResult:
        message = await self.get_message(db, message_id, user_id)
        if message.sender_id == user_id or message.read_at is not None:
            return DeliveryResult(False, message)
        now = utcnow()
        if message.delivered_at is None:
            message.delivered_at = now
        message.read_at = now
        await db.flush()
        return DeliveryResult(True, message)

    async def mark_all_read(self, db: AsyncSession, chat_id: uuid.UUID, user_id: str) -> int:
        """Mark every unread message from other members as read; returns how many changed."""
        await chat_service.require_member(db, chat_id, user_id)
        now = utcnow()
        unread = (
            Message.chat_id == chat_id,
            Message.sender_id != user_id,
            Message.read_at.is_(None),
        )
        await db.execute(
            update(Message)
            .where(*unread, Message.delivered_at.is_(None))
            .values(delivered_at=now)
        )
        result = await db.execute(update(Message).where(*unread).values(read_at=now))
        logger.info("Marked %d message(s) read in chat %s for %s", result.rowcount, chat_id, user_id)
        return result.rowcount

    async def unread_count(self, db: AsyncSession, chat_id: uuid.UUID, user_id: str) -> int:
        await chat_service.require_member(db, chat_id, user_id)
        count = await db.scalar(
            select(func.count())
            .select_from(Message)
            .where(
                Message.chat_id == chat_id,
                Message.sender_id != user_id,
                Message.read_at.is_(None),
            )
        )
        return count or 0


    async def delete_message(self, db: AsyncSession, message_id: uuid.UUID, user_id: str) -> Message:
        """
        Replace the body with a tombstone; only the sender may do this.
        Deleting a tombstone again changes nothing.
        """
        message = await self.get_message(db, message_id, user_id)
        if message.sender_id != user_id:
            raise authorization_error("You can only delete your own messages")
        if message.deleted_at is None:
            message.body = DELETED_MESSAGE_BODY
            message.deleted_at = utcnow()
            await db.flush()
            logger.info("Message %s deleted by its sender", message_id)
        return message

    async def total_unread(self, db: AsyncSession, user_id: str) -> Tuple[int, List[Tuple[uuid.UUID, int]]]:
        """
        Unread messages across the user's chats.

        Returns (total, [(chat_id, count), ...]); chats with nothing unread are left out.
        """
        result = await db.execute(
            select(Message.chat_id, func.count())
            .join(
                ChatMember,
                (ChatMember.chat_id == Message.chat_id) & (ChatMember.member_id == user_id),
            )
            .where(Message.sender_id != user_id, Message.read_at.is_(None))
            .group_by(Message.chat_id)
            .order_by(Message.chat_id)
        )
        counts = [(chat_id, count) for chat_id, count in result.all()]
        return sum(count for _, count in counts), counts


message_service = MessageService()
