"""
Naksh Backend — Post, Comment and Profile Service Tests
=========================================================

What:  Post creation rules, expiry, soft deletion, comments and profiles.

What we test:
    ✅ a post needs a caption or media; media items need url and type
    ✅ expires_at = created_at + post_ttl_hours
    ✅ expired posts are GONE for comments, deleted posts are NOT_FOUND
    ✅ only authors delete; the feed hides deleted and expired posts
    ✅ comment bodies are sanitized; replies stay under their parent
    ✅ authors edit their own posts and comments while the post is live
    ✅ the following feed: own posts plus followed authors, never PRIVATE
    ✅ profile creation and uniqueness
"""

from datetime import timedelta

import pytest

from conftest import ALICE, BOB, CAROL, make_post
from naksh.config import settings
from naksh.exceptions import APIError, ErrorKind
from naksh.schemas.posts import PostCreate, PostUpdate
from naksh.schemas.users import ProfileCreate, ProfileUpdate
from naksh.services.comment_service import comment_service
from naksh.services.follow_service import follow_service
from naksh.services.post_service import post_service
from naksh.services.user_service import user_service


class TestCreatePost:

    @pytest.mark.asyncio
    async def test_post_with_media(self, db_session, users):
        data = PostCreate.model_validate({
            "caption": "  Golden hour  ",
            "visibility": "followers",
            "latitude": 19.07,
            "longitude": 72.87,
            "media": [
                {"mediaUrl": "https://cdn.example/a.jpg", "type": "image"},
                {"mediaUrl": "https://cdn.example/b.mp4", "type": "VIDEO", "durationSeconds": 12.5},
            ],
        })
        post = await post_service.create_post(db_session, ALICE, data)

        assert post.caption == "Golden hour"
        assert post.visibility == "FOLLOWERS"
        assert [m.type for m in post.media] == ["IMAGE", "VIDEO"]
        assert [m.ordering for m in post.media] == [0, 1]
        assert post.expires_at - post.created_at == timedelta(hours=settings.post_ttl_hours)

    @pytest.mark.asyncio
    async def test_empty_post_is_rejected(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await post_service.create_post(db_session, ALICE, PostCreate(caption="   "))
        assert exc_info.value.message == "Post must have a caption or at least one media item"

    @pytest.mark.asyncio
    async def test_media_item_needs_url_and_type(self, db_session, users):
        data = PostCreate.model_validate({"media": [{"type": "IMAGE"}]})
        with pytest.raises(APIError) as exc_info:
            await post_service.create_post(db_session, ALICE, data)
        assert exc_info.value.details == {"missingFields": ["mediaUrl"]}

    @pytest.mark.asyncio
    async def test_too_many_media_items(self, db_session, users):
        data = PostCreate.model_validate({
            "media": [{"mediaUrl": f"https://cdn.example/{i}.jpg", "type": "IMAGE"} for i in range(11)]
        })
        with pytest.raises(APIError) as exc_info:
            await post_service.create_post(db_session, ALICE, data)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_half_a_coordinate_is_rejected(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await post_service.create_post(db_session, ALICE, PostCreate(caption="hi", latitude=10.0))
        assert exc_info.value.message.startswith("Invalid longitude")


class TestPostLifecycle:

    @pytest.mark.asyncio
    async def test_expired_post_is_gone(self, db_session, expired_post):
        with pytest.raises(APIError) as exc_info:
            await post_service.get_post(db_session, expired_post.id)
        assert exc_info.value.kind is ErrorKind.GONE

    @pytest.mark.asyncio
    async def test_only_author_deletes(self, db_session, post):
        with pytest.raises(APIError) as exc_info:
            await post_service.delete_post(db_session, post.id, BOB)
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION

        await post_service.delete_post(db_session, post.id, ALICE)
        with pytest.raises(APIError) as exc_info:
            await post_service.get_post(db_session, post.id)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_feed_shows_only_live_posts(self, db_session, post, expired_post):
        deleted = make_post(BOB, caption="oops")
        db_session.add(deleted)
        await db_session.flush()
        await post_service.delete_post(db_session, deleted.id, BOB)

        posts, total = await post_service.list_posts(db_session, 1, 20)
        assert total == 1
        assert [p.id for p in posts] == [post.id]

        posts, total = await post_service.list_posts(db_session, 1, 20, author_id=BOB)
        assert total == 0


class TestComments:

    @pytest.mark.asyncio
    async def test_comment_is_sanitized(self, db_session, post):
        comment = await comment_service.create_comment(
            db_session, post.id, BOB, " nice <script>steal()</script>shot "
        )
        assert comment.body == "nice shot"

    @pytest.mark.asyncio
    async def test_cannot_comment_on_expired_post(self, db_session, expired_post):
        with pytest.raises(APIError) as exc_info:
            await comment_service.create_comment(db_session, expired_post.id, BOB, "late")
        assert exc_info.value.kind is ErrorKind.GONE
        assert exc_info.value.message == "Cannot comment on expired post"

    @pytest.mark.asyncio
    async def test_deleted_comments_are_hidden(self, db_session, post):
        keep = await comment_service.create_comment(db_session, post.id, BOB, "first")
        drop = await comment_service.create_comment(db_session, post.id, BOB, "second")

        with pytest.raises(APIError) as exc_info:
            await comment_service.delete_comment(db_session, drop.id, ALICE)
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION

        await comment_service.delete_comment(db_session, drop.id, BOB)
        comments, total = await comment_service.list_comments(db_session, post.id, 1, 10)
        assert total == 1
        assert comments[0].id == keep.id


class TestReplies:

    @pytest.mark.asyncio
    async def test_replies_are_listed_under_their_parent(self, db_session, post):
        parent = await comment_service.create_comment(db_session, post.id, BOB, "where is this?")
        reply = await comment_service.create_comment(
            db_session, post.id, ALICE, "Juhu beach", parent_id=parent.id
        )
        assert reply.parent_id == parent.id

        top_level, total = await comment_service.list_comments(db_session, post.id, 1, 10)
        assert total == 1
        assert top_level[0].id == parent.id

        _, total = await comment_service.list_comments(db_session, post.id, 1, 10, include_replies=True)
        assert total == 2

        replies, total = await comment_service.list_replies(db_session, parent.id, 1, 10)
        assert total == 1
        assert replies[0].body == "Juhu beach"

    @pytest.mark.asyncio
    async def test_parent_must_be_on_the_same_post(self, db_session, post):
        other = make_post(BOB, caption="Elsewhere")
        db_session.add(other)
        await db_session.flush()
        parent = await comment_service.create_comment(db_session, other.id, ALICE, "hi")

        with pytest.raises(APIError) as exc_info:
            await comment_service.create_comment(db_session, post.id, BOB, "reply", parent_id=parent.id)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.message == "Parent comment not found"

    @pytest.mark.asyncio
    async def test_deleted_parent_takes_no_replies(self, db_session, post):
        parent = await comment_service.create_comment(db_session, post.id, BOB, "soon gone")
        await comment_service.delete_comment(db_session, parent.id, BOB)

        with pytest.raises(APIError) as exc_info:
            await comment_service.create_comment(db_session, post.id, ALICE, "too late", parent_id=parent.id)
        assert exc_info.value.message == "Parent comment not found"


class TestEdits:

    @pytest.mark.asyncio
    async def test_author_edits_comment(self, db_session, post):
        comment = await comment_service.create_comment(db_session, post.id, BOB, "nice")
        assert comment.edited_at is None

        edited = await comment_service.update_comment(db_session, comment.id, BOB, " very nice ")
        assert edited.body == "very nice"
        assert edited.edited_at is not None

        with pytest.raises(APIError) as exc_info:
            await comment_service.update_comment(db_session, comment.id, ALICE, "hijack")
        assert exc_info.value.kind is ErrorKind.AUTHORIZATION
        assert exc_info.value.message == "You can only edit your own comments"

    @pytest.mark.asyncio
    async def test_comment_edit_keeps_length_rules(self, db_session, post):
        comment = await comment_service.create_comment(db_session, post.id, BOB, "nice")
        with pytest.raises(APIError) as exc_info:
            await comment_service.update_comment(db_session, comment.id, BOB, "   ")
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert comment.body == "nice"

    @pytest.mark.asyncio
    async def test_author_edits_post(self, db_session, post):
        edited = await post_service.update_post(
            db_session, post.id, ALICE, PostUpdate(caption="Sunrise, actually", visibility="followers")
        )
        assert edited.caption == "Sunrise, actually"
        assert edited.visibility == "FOLLOWERS"
        assert edited.updated_at is not None

    @pytest.mark.asyncio
    async def test_post_edit_touches_only_sent_fields(self, db_session, post):
        post.location_name = "Pier 7"
        await post_service.update_post(db_session, post.id, ALICE, PostUpdate(visibility="PRIVATE"))
        assert post.caption == "Sunset at the pier"
        assert post.location_name == "Pier 7"

    @pytest.mark.asyncio
    async def test_post_edit_rules(self, db_session, post, expired_post):
        with pytest.raises(APIError) as exc_info:
            await post_service.update_post(db_session, post.id, BOB, PostUpdate(caption="mine now"))
        assert exc_info.value.message == "You can only edit your own posts"

        with pytest.raises(APIError) as exc_info:
            await post_service.update_post(db_session, post.id, ALICE, PostUpdate(caption=""))
        assert exc_info.value.message == "Post must have a caption or at least one media item"

        with pytest.raises(APIError) as exc_info:
            await post_service.update_post(db_session, post.id, ALICE, PostUpdate(visibility="friends"))
        assert exc_info.value.kind is ErrorKind.VALIDATION

        with pytest.raises(APIError) as exc_info:
            await post_service.update_post(db_session, expired_post.id, ALICE, PostUpdate(caption="again"))
        assert exc_info.value.kind is ErrorKind.GONE


class TestFollowingFeed:

    @pytest.mark.asyncio
    async def test_feed_mixes_own_and_followed_posts(self, db_session, post, expired_post):
        hidden = make_post(ALICE, caption="Just for me")
        hidden.visibility = "PRIVATE"
        stranger = make_post(CAROL, caption="Not followed")
        own = make_post(BOB, caption="Mine")
        db_session.add_all([hidden, stranger, own])
        await db_session.flush()
        await follow_service.follow(db_session, BOB, ALICE)

        posts, total = await post_service.list_feed(db_session, BOB, 1, 10)
        assert total == 2
        assert {p.id for p in posts} == {post.id, own.id}

        posts, total = await post_service.list_feed(db_session, ALICE, 1, 10)
        assert {p.id for p in posts} == {post.id, hidden.id}

    @pytest.mark.asyncio
    async def test_feed_without_follows_is_just_your_own(self, db_session, post):
        posts, total = await post_service.list_feed(db_session, BOB, 1, 10)
        assert (posts, total) == ([], 0)


class TestProfiles:

    @pytest.mark.asyncio
    async def test_create_profile_defaults_display_name(self, db_session):
        user = await user_service.create_profile(
            db_session, "user_dave", ProfileCreate(username="dave", email="  Dave@Example.COM ")
        )
        assert user.email == "dave@example.com"
        assert user.display_name == "dave"

    @pytest.mark.asyncio
    async def test_create_twice_conflicts(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await user_service.create_profile(
                db_session, ALICE, ProfileCreate(username="alice2", email="a2@example.com")
            )
        assert exc_info.value.message == "Profile already exists"

    @pytest.mark.asyncio
    async def test_taken_username(self, db_session, users):
        with pytest.raises(APIError) as exc_info:
            await user_service.create_profile(
                db_session, "user_dave", ProfileCreate(username="alice", email="dave@example.com")
            )
        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.message == "username already exists"
        assert await user_service.username_available(db_session, "dave") is True

    @pytest.mark.asyncio
    async def test_update_touches_only_sent_fields(self, db_session, users):
        alice = users["alice"]
        await user_service.update_me(db_session, alice, ProfileUpdate.model_validate({"bio": "Photographer"}))
        assert alice.bio == "Photographer"
        assert alice.display_name == "Alice"
