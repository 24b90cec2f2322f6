"""
Naksh Backend — Post Service
==============================

What:  Creating, editing, reading, listing and soft-deleting ephemeral posts,
       plus the following feed.
How:   A post lives for `settings.post_ttl_hours`. Every operation that acts
       on an existing post goes through `get_live_post()`, which turns a
       missing or soft-deleted post into NOT_FOUND and an expired one into
       GONE, so the rule is written once.
Who:   posts routes; CommentService and ReactionService reuse get_live_post().

Transaction:
    create_post() adds the post and its media rows to the request session and
    flushes once; `get_db_session` commits both or neither.
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.config import settings
from naksh.exceptions import authorization_error, gone, not_found, validation_error
from naksh.models.post import MediaType, Post, PostMedia, Visibility
from naksh.models.social import Follow
from naksh.schemas.posts import PostCreate, PostUpdate
from naksh.utils import as_utc, utcnow
from naksh.validation import (
    require_array,
    require_coordinates,
    require_enum,
    require_fields,
    require_string_length,
)

logger = logging.getLogger(__name__)

MAX_CAPTION_LENGTH = 2000
MAX_MEDIA_ITEMS = 10

VISIBILITIES = [v.value for v in Visibility]
MEDIA_TYPES = [m.value for m in MediaType]


class PostService:
    """
    Business logic for posts.

    Stateless: the session is passed to every call so the route's request
    transaction covers everything the service does.
    """

    async def get_live_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        gone_message: str = "Post has expired",
    ) -> Post:
        """
        Fetch a post that can still be interacted with.

        Raises:
            APIError(NOT_FOUND): post absent or soft-deleted
            APIError(GONE):      post past its expires_at
        """
        post = await db.get(Post, post_id)
        if post is None or post.deleted_at is not None:
            raise not_found("Post")
        if as_utc(post.expires_at) <= utcnow():
            raise gone(gone_message)
        return post

    async def create_post(self, db: AsyncSession, author_id: str, data: PostCreate) -> Post:
        caption = data.caption.strip() if data.caption else None
        require_string_length(caption, "Caption", max_length=MAX_CAPTION_LENGTH)
        media_items = require_array(data.media, "Media", max_length=MAX_MEDIA_ITEMS) or []
        if not caption and not media_items:
            raise validation_error("Post must have a caption or at least one media item")

        visibility = require_enum((data.visibility or "").upper(), VISIBILITIES, "visibility")

        latitude: Optional[float] = None
        longitude: Optional[float] = None
        if data.latitude is not None or data.longitude is not None:
            latitude, longitude = require_coordinates(data.latitude, data.longitude)

        media_rows: List[PostMedia] = []
        for ordering, item in enumerate(media_items):
            require_fields(item.model_dump(by_alias=True), ["mediaUrl", "type"])
            media_rows.append(
                PostMedia(
                    media_url=item.media_url,
                    public_id=item.public_id,
                    type=require_enum(item.type.upper(), MEDIA_TYPES, "media type"),
                    ordering=ordering,
                    duration_seconds=item.duration_seconds,
                )
            )

        now = utcnow()
        post = Post(
            author_id=author_id,
            caption=caption,
            visibility=visibility,
            location_name=data.location_name,
            latitude=latitude,
            longitude=longitude,
            created_at=now,
            expires_at=now + timedelta(hours=settings.post_ttl_hours),
            media=media_rows,
        )
        db.add(post)
        await db.flush()
        logger.info("Post %s created by %s with %d media item(s)", post.id, author_id, len(media_rows))
        return post

    async def get_post(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        return await self.get_live_post(db, post_id)

    async def delete_post(self, db: AsyncSession, post_id: uuid.UUID, user_id: str) -> Post:
        post = await db.get(Post, post_id)
        if post is None or post.deleted_at is not None:
            raise not_found("Post")
        if post.author_id != user_id:
            raise authorization_error("You can only delete your own posts")
        post.deleted_at = utcnow()
        await db.flush()
        logger.info("Post %s soft-deleted by its author", post_id)
        return post

    async def list_posts(
        self,
        db: AsyncSession,
        page: int,
        limit: int,
        author_id: Optional[str] = None,
    ) -> Tuple[List[Post], int]:
        """
        Live public posts, newest first.

        Query plan:
            WHERE deleted_at IS NULL AND visibility = 'PUBLIC' AND expires_at > now
            ORDER BY created_at DESC → idx_posts_created_at
        """
        conditions = [
            Post.deleted_at.is_(None),
            Post.visibility == Visibility.PUBLIC.value,
            Post.expires_at > utcnow(),
        ]
        if author_id is not None:
            conditions.append(Post.author_id == author_id)

        result = await db.execute(
            select(Post)
            .where(*conditions)
            .order_by(Post.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        posts = list(result.scalars().all())
        total = await db.scalar(select(func.count()).select_from(Post).where(*conditions))
        return posts, total or 0

    async def update_post(
        self, db: AsyncSession, post_id: uuid.UUID, user_id: str, data: PostUpdate
    ) -> Post:
        """
        Change caption, visibility or location name; only fields sent in the
        body are touched. Author only, and only while the post is live.
        """
        post = await self.get_live_post(db, post_id, "Cannot edit an expired post")
        if post.author_id != user_id:
            raise authorization_error("You can only edit your own posts")

        # Identity-map hits may not have media loaded yet
        await db.refresh(post, attribute_names=["media"])

        sent = data.model_fields_set
        if "caption" in sent:
            caption = data.caption.strip() if data.caption else None
            require_string_length(caption, "Caption", max_length=MAX_CAPTION_LENGTH)
            if not caption and not post.media:
                raise validation_error("Post must have a caption or at least one media item")
            post.caption = caption
        if "visibility" in sent:
            post.visibility = require_enum((data.visibility or "").upper(), VISIBILITIES, "visibility")
        if "location_name" in sent:
            post.location_name = data.location_name

        post.updated_at = utcnow()
        await db.flush()
        return post

    async def list_feed(
        self, db: AsyncSession, user_id: str, page: int, limit: int
    ) -> Tuple[List[Post], int]:
        """
        Live posts by the user and by the people they follow, newest first.
        Followed authors contribute PUBLIC and FOLLOWERS posts; PRIVATE posts
        appear only in their author's own feed.
        """
        followees = select(Follow.followee_id).where(Follow.follower_id == user_id)
        conditions = [
            Post.deleted_at.is_(None),
            Post.expires_at > utcnow(),
            or_(
                Post.author_id == user_id,
                and_(
                    Post.author_id.in_(followees),
                    Post.visibility.in_([Visibility.PUBLIC.value, Visibility.FOLLOWERS.value]),
                ),
            ),
        ]
        result = await db.execute(
            select(Post)
            .where(*conditions)
            .order_by(Post.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        posts = list(result.scalars().all())
        total = await db.scalar(select(func.count()).select_from(Post).where(*conditions))
        return posts, total or 0


# ── Singleton Instance ────────────────────────────────────────────────────
post_service = PostService()
