"""
Naksh Backend — Chat and Message Service Tests
================================================

What:  Chat creation rules and the Sent → Delivered → Read progression.

What we test:
    ✅ direct chats: exactly two members, one per pair (CONFLICT on repeat)
    ✅ group chats need a title
    ✅ send() bumps chat.last_message_at; non-members are refused
    ✅ delivery marks are idempotent and never move backwards
    ✅ read implies delivered; the sender's own marks are no-ops
    ✅ mark_all_read / unread_count / total_unread across chats
    ✅ sender-only deletion leaves a "[Message deleted]" tombstone
    ✅ group membership: add, list, leave, remove; rename; delete with messages
"""

import pytest
import pytest_asyncio

from conftest import ALICE, BOB, CAROL
from naksh.exceptions import APIError, ErrorKind
from naksh.models.chat import Chat, Message
from naksh.services.chat_service import chat_service
from naksh.services.message_service import DELETED_MESSAGE_BODY, message_service
from naksh.utils import as_utc


@pytest_asyncio.fixture
async def chat(db_session, users):
    chat, _ = await chat_service.create_chat(db_session, ALICE, [BOB])
    return chat


class TestChats:

    @pytest.mark.asyncio
    async def test_direct_chat_members(self, db_session, users):
        chat, member_ids = await chat_service.create_chat(db_session, ALICE, [BOB, ALICE])
        assert member_ids == [ALICE, BOB]
        assert chat.is_group is False
        assert await chat_service.is_member(db_session, chat.id, BOB)
        assert not await chat_service.is_member(db_session, chat.id, CAROL)

    @pytest.mark.asyncio
    async def test_second_direct_chat_between_same_pair_conflicts(self, db_session, users):
        chat, _ = await chat_service.create_chat(db_session, ALICE, [BOB])
        with pytest.raises(APIError) as exc_info:
            await chat_service.create_chat(db_session, BOB, [ALICE])
        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.details == {"chatId": str(chat.id)}

    @pytest.mark.asyncio
    async def test_chat_with_only_yourself(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await chat_service.create_chat(db_session, ALICE, [ALICE])
        assert exc_info.value.message == "A chat needs at least 2 members"

    @pytest.mark.asyncio
    async def test_group_chat_needs_title(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await chat_service.create_chat(db_session, ALICE, [BOB, CAROL], is_group=True)
        assert exc_info.value.message == "Title is required for group chats"

        chat, member_ids = await chat_service.create_chat(
            db_session, ALICE, [BOB, CAROL], is_group=True, title="Weekend"
        )
        assert chat.title == "Weekend"
        assert len(member_ids) == 3

    @pytest.mark.asyncio
    async def test_direct_chat_with_three_members(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await chat_service.create_chat(db_session, ALICE, [BOB, CAROL])
        assert exc_info.value.message == "Direct chats must have exactly 2 members"

    @pytest.mark.asyncio
    async def test_unknown_member(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await chat_service.create_chat(db_session, ALICE, ["user_nobody"])
        assert exc_info.value.kind is ErrorKind.NOT_FOUND


class TestSend:

    @pytest.mark.asyncio
    async def test_send_bumps_last_message_at(self, db_session, chat):
        assert chat.last_message_at is None
        message = await message_service.send(db_session, chat.id, ALICE, "  hello  ")
        assert message.body == "hello"
        assert as_utc(chat.last_message_at) == as_utc(message.created_at)

    @pytest.mark.asyncio
    async def test_non_member_cannot_send(self, db_session, chat):
        with pytest.raises(APIError) as exc_info:
            await message_service.send(db_session, chat.id, CAROL, "hi")
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION
        assert exc_info.value.message == "Not authorized to send messages to this chat"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["", "   ", None, "x" * 1001])
    async def test_body_rules(self, db_session, chat, body):
        with pytest.raises(APIError) as exc_info:
            await message_service.send(db_session, chat.id, ALICE, body)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_history_is_oldest_first_within_a_page(self, db_session, chat):
        for text in ("one", "two", "three"):
            await message_service.send(db_session, chat.id, ALICE, text)

        messages, total = await message_service.list_messages(db_session, chat.id, BOB, 1, 2)
        assert total == 3
        assert [m.body for m in messages] == ["two", "three"]


class TestDelivery:

    @pytest.mark.asyncio
    async def test_mark_delivered_is_idempotent(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "hello")

        first = await message_service.mark_delivered(db_session, message.id, BOB)
        delivered_at = first.message.delivered_at
        second = await message_service.mark_delivered(db_session, message.id, BOB)

        assert first.changed is True
        assert second.changed is False
        assert second.message.delivered_at == delivered_at

    @pytest.mark.asyncio
    async def test_read_implies_delivered(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "hello")

        result = await message_service.mark_read(db_session, message.id, BOB)
        assert result.changed is True
        assert result.message.delivered_at is not None
        assert result.message.read_at is not None
        assert result.message.delivered_at <= result.message.read_at

        # Delivered after read changes nothing
        again = await message_service.mark_delivered(db_session, message.id, BOB)
        assert again.changed is False

    @pytest.mark.asyncio
    async def test_sender_marks_are_no_ops(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "hello")

        result = await message_service.mark_read(db_session, message.id, ALICE)
        assert result.changed is False
        assert result.message.read_at is None
        assert result.message.delivered_at is None

    @pytest.mark.asyncio
    async def test_outsider_cannot_read(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "hello")
        with pytest.raises(APIError) as exc_info:
            await message_service.mark_read(db_session, message.id, CAROL)
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION

    @pytest.mark.asyncio
    async def test_mark_all_read_and_unread_count(self, db_session, chat):
        for text in ("a", "b", "c"):
            await message_service.send(db_session, chat.id, ALICE, text)
        await message_service.send(db_session, chat.id, BOB, "reply")

        assert await message_service.unread_count(db_session, chat.id, BOB) == 3
        assert await message_service.mark_all_read(db_session, chat.id, BOB) == 3
        assert await message_service.unread_count(db_session, chat.id, BOB) == 0
        # Bob's own message is still unread for Alice
        assert await message_service.unread_count(db_session, chat.id, ALICE) == 1

    @pytest.mark.asyncio
    async def test_total_unread_spans_chats(self, db_session, chat):
        group, _ = await chat_service.create_chat(db_session, CAROL, [ALICE, BOB], is_group=True, title="Crew")
        await message_service.send(db_session, chat.id, ALICE, "one")
        await message_service.send(db_session, chat.id, ALICE, "two")
        await message_service.send(db_session, group.id, CAROL, "three")
        await message_service.send(db_session, group.id, BOB, "mine")

        total, counts = await message_service.total_unread(db_session, BOB)
        assert total == 3
        assert dict(counts) == {chat.id: 2, group.id: 1}

        await message_service.mark_all_read(db_session, chat.id, BOB)
        total, counts = await message_service.total_unread(db_session, BOB)
        assert total == 1
        assert dict(counts) == {group.id: 1}

    @pytest.mark.asyncio
    async def test_total_unread_ignores_chats_the_user_left(self, db_session, users):
        group, _ = await chat_service.create_chat(db_session, ALICE, [BOB, CAROL], is_group=True, title="Crew")
        await message_service.send(db_session, group.id, ALICE, "hello")
        await chat_service.remove_member(db_session, group.id, CAROL, CAROL)

        assert await message_service.total_unread(db_session, CAROL) == (0, [])


class TestDeleteMessage:

    @pytest.mark.asyncio
    async def test_sender_leaves_a_tombstone(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "oops")

        deleted = await message_service.delete_message(db_session, message.id, ALICE)
        assert deleted.body == DELETED_MESSAGE_BODY
        assert deleted.deleted_at is not None

        history, total = await message_service.list_messages(db_session, chat.id, BOB, 1, 50)
        assert total == 1
        assert history[0].body == "[Message deleted]"

    @pytest.mark.asyncio
    async def test_deleting_twice_keeps_the_first_timestamp(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "oops")
        first = (await message_service.delete_message(db_session, message.id, ALICE)).deleted_at
        second = (await message_service.delete_message(db_session, message.id, ALICE)).deleted_at
        assert second == first

    @pytest.mark.asyncio
    async def test_only_the_sender_deletes(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "keep me")
        with pytest.raises(APIError) as exc_info:
            await message_service.delete_message(db_session, message.id, BOB)
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION
        assert exc_info.value.message == "You can only delete your own messages"
        assert message.body == "keep me"

    @pytest.mark.asyncio
    async def test_outsider_cannot_delete(self, db_session, chat):
        message = await message_service.send(db_session, chat.id, ALICE, "private")
        with pytest.raises(APIError) as exc_info:
            await message_service.delete_message(db_session, message.id, CAROL)
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION


class TestChatAdministration:

    @pytest_asyncio.fixture
    async def group(self, db_session, users):
        group, _ = await chat_service.create_chat(db_session, ALICE, [BOB], is_group=True, title="Crew")
        return group

    @pytest.mark.asyncio
    async def test_add_and_list_members(self, db_session, group):
        member = await chat_service.add_member(db_session, group.id, BOB, CAROL)
        assert member.member_id == CAROL

        members = await chat_service.list_members(db_session, group.id, CAROL)
        assert sorted(user.id for user in members) == [ALICE, BOB, CAROL]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "added_by,member_id,kind,message",
        [
            (ALICE, BOB, ErrorKind.CONFLICT, "User is already a member"),
            (ALICE, "user_nobody", ErrorKind.NOT_FOUND, "User not found"),
            (CAROL, CAROL, ErrorKind.AUTHORIZATION, "Not authorized to access this chat"),
        ],
    )
    async def test_add_member_rules(self, db_session, group, added_by, member_id, kind, message):
        with pytest.raises(APIError) as exc_info:
            await chat_service.add_member(db_session, group.id, added_by, member_id)
        assert exc_info.value.kind is kind
        assert exc_info.value.message == message

    @pytest.mark.asyncio
    async def test_direct_chats_are_closed(self, db_session, chat):
        with pytest.raises(APIError) as exc_info:
            await chat_service.add_member(db_session, chat.id, ALICE, CAROL)
        assert exc_info.value.message == "Members can only be added to group chats"

        with pytest.raises(APIError) as exc_info:
            await chat_service.remove_member(db_session, chat.id, ALICE, BOB)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_leave_and_remove(self, db_session, group):
        await chat_service.add_member(db_session, group.id, ALICE, CAROL)

        await chat_service.remove_member(db_session, group.id, CAROL, CAROL)
        assert not await chat_service.is_member(db_session, group.id, CAROL)

        with pytest.raises(APIError) as exc_info:
            await chat_service.remove_member(db_session, group.id, CAROL, BOB)
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION

        await chat_service.remove_member(db_session, group.id, ALICE, BOB)
        assert await chat_service.member_ids(db_session, group.id) == [ALICE]

        with pytest.raises(APIError) as exc_info:
            await chat_service.remove_member(db_session, group.id, ALICE, BOB)
        assert exc_info.value.message == "Chat member not found"

    @pytest.mark.asyncio
    async def test_rename(self, db_session, group):
        chat, member_ids = await chat_service.update_chat(db_session, group.id, BOB, "  Weekend crew  ")
        assert chat.title == "Weekend crew"
        assert member_ids == [ALICE, BOB]

        with pytest.raises(APIError) as exc_info:
            await chat_service.update_chat(db_session, group.id, BOB, "   ")
        assert exc_info.value.message == "Title is required for group chats"

    @pytest.mark.asyncio
    async def test_delete_takes_messages_along(self, db_session, group):
        message = await message_service.send(db_session, group.id, ALICE, "bye")

        with pytest.raises(APIError):
            await chat_service.delete_chat(db_session, group.id, CAROL)

        chat_id, message_id = group.id, message.id
        await chat_service.delete_chat(db_session, chat_id, BOB)
        db_session.expunge_all()
        assert await db_session.get(Chat, chat_id) is None
        assert await db_session.get(Message, message_id) is None
        assert await chat_service.member_ids(db_session, chat_id) == []
