"""
Naksh Backend — Chat and Message Routes
=========================================

What:  /api/chats (create, list, detail, rename, delete, members, history,
       read-all, unread count) and /api/messages (send, detail, delete,
       delivery marks, status, unread count across chats).

Delivery marks answer 200 either way; `data.changed` tells the client
whether the call moved the message forward or was a no-op (already in
that state, or the caller sent the message).
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import require_active_user, require_user_id
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.responses import created_response, no_content_response, paginated_response, success_response
from naksh.schemas.chats import ChatCreate, ChatMemberAdd, ChatOut, ChatUpdate, MessageCreate, MessageOut
from naksh.schemas.common import to_wire, to_wire_list
from naksh.schemas.users import UserOut
from naksh.services.chat_service import chat_service
from naksh.services.message_service import DeliveryResult, message_service
from naksh.validation import require_pagination

router = APIRouter(prefix="/api/chats", tags=["Chats"], route_class=BoundaryRoute)
messages_router = APIRouter(prefix="/api/messages", tags=["Messages"], route_class=BoundaryRoute)


def _chat_wire(chat, member_ids) -> dict:
    out = ChatOut.model_validate(chat)
    out.member_ids = member_ids
    return out.model_dump(by_alias=True, mode="json")


def _delivery_wire(result: DeliveryResult) -> dict:
    return {"changed": result.changed, "message": to_wire(MessageOut, result.message)}


# ── Chats ─────────────────────────────────────────────────────────────────


@router.post("", status_code=201, summary="Create a direct or group chat")
async def create_chat(
    body: ChatCreate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    chat, member_ids = await chat_service.create_chat(
        db, user.id, body.member_ids, is_group=body.is_group, title=body.title
    )
    return created_response(_chat_wire(chat, member_ids), "Chat created successfully")


@router.get("", summary="The caller's chats, most recently active first")
async def list_chats(
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    chats, total = await chat_service.list_chats(db, user_id, page_num, limit_num)
    return paginated_response(
        [_chat_wire(chat, member_ids) for chat, member_ids in chats], page_num, limit_num, total
    )


@router.get("/{chat_id}", summary="Chat detail")
async def get_chat(
    chat_id: UUID,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    chat, member_ids = await chat_service.get_chat(db, chat_id, user_id)
    return success_response(_chat_wire(chat, member_ids))


@router.put("/{chat_id}", summary="Rename a chat")
async def update_chat(
    chat_id: UUID,
    body: ChatUpdate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    chat, member_ids = await chat_service.update_chat(db, chat_id, user.id, body.title)
    return success_response(_chat_wire(chat, member_ids), "Chat updated successfully")


@router.delete("/{chat_id}", status_code=204, summary="Delete a chat with its messages")
async def delete_chat(
    chat_id: UUID,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    await chat_service.delete_chat(db, chat_id, user.id)
    return no_content_response()


@router.get("/{chat_id}/members", summary="Members of a chat")
async def list_members(
    chat_id: UUID,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    members = await chat_service.list_members(db, chat_id, user_id)
    return success_response(to_wire_list(UserOut, members))


@router.post("/{chat_id}/members", status_code=201, summary="Add a member to a group chat")
async def add_member(
    chat_id: UUID,
    body: ChatMemberAdd,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    member = await chat_service.add_member(db, chat_id, user.id, body.member_id)
    return created_response(
        {"chatId": str(member.chat_id), "memberId": member.member_id}, "Member added successfully"
    )


@router.delete(
    "/{chat_id}/members/{member_id}", status_code=204, summary="Remove a member or leave a group chat"
)
async def remove_member(
    chat_id: UUID,
    member_id: str,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    await chat_service.remove_member(db, chat_id, user.id, member_id)
    return no_content_response()


@router.get("/{chat_id}/messages", summary="Chat history")
async def list_messages(
    chat_id: UUID,
    page: str = Query(default="1"),
    limit: str = Query(default="50"),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    messages, total = await message_service.list_messages(db, chat_id, user_id, page_num, limit_num)
    return paginated_response(to_wire_list(MessageOut, messages), page_num, limit_num, total)


@router.put("/{chat_id}/read", summary="Mark every message in a chat as read")
async def mark_chat_read(
    chat_id: UUID,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    count = await message_service.mark_all_read(db, chat_id, user.id)
    return success_response({"count": count}, f"{count} message(s) marked as read")


@router.get("/{chat_id}/unread-count", summary="Unread messages for the caller")
async def unread_count(
    chat_id: UUID,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    return success_response({"count": await message_service.unread_count(db, chat_id, user_id)})


# ── Messages ──────────────────────────────────────────────────────────────


@messages_router.post("", status_code=201, summary="Send a message")
async def send_message(
    body: MessageCreate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    message = await message_service.send(db, body.chat_id, user.id, body.body)
    return created_response(to_wire(MessageOut, message), "Message sent successfully")


@messages_router.get("/unread-count", summary="Unread messages across all of the caller's chats")
async def total_unread(
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    total, counts = await message_service.total_unread(db, user_id)
    return success_response({
        "totalUnreadCount": total,
        "chatCounts": [{"chatId": str(chat_id), "unreadCount": count} for chat_id, count in counts],
    })


@messages_router.get("/{message_id}", summary="Message detail")
async def get_message(
    message_id: UUID,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    message = await message_service.get_message(db, message_id, user_id)
    return success_response(to_wire(MessageOut, message))


@messages_router.delete("/{message_id}", status_code=204, summary="Delete your own message")
async def delete_message(
    message_id: UUID,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    await message_service.delete_message(db, message_id, user.id)
    return no_content_response()


@messages_router.put("/{message_id}/delivered", summary="Mark a message as delivered")
async def mark_delivered(
    message_id: UUID,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await message_service.mark_delivered(db, message_id, user.id)
    text = "Message marked as delivered" if result.changed else "Message delivery unchanged"
    return success_response(_delivery_wire(result), text)


@messages_router.put("/{message_id}/read", summary="Mark a message as read")
async def mark_read(
    message_id: UUID,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await message_service.mark_read(db, message_id, user.id)
    text = "Message marked as read" if result.changed else "Message read state unchanged"
    return success_response(_delivery_wire(result), text)


@messages_router.get("/{message_id}/status", summary="Delivery status of a message")
async def message_status(
    message_id: UUID,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    message = to_wire(MessageOut, await message_service.get_message(db, message_id, user_id))
    return success_response({
        key: message[key] for key in ("id", "status", "sentAt", "deliveredAt", "readAt")
    })
