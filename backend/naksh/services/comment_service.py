"""
Naksh Backend — Comment Service
=================================

What:  Comments and one-to-many replies on live posts.
How:   Bodies are trimmed and passed through sanitize_html() before the
       length check; edits and deletion are by the author only, deletion
       is a soft delete. A reply must point at a visible comment on the
       same post.
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import authorization_error, not_found
from naksh.models.post import Comment, Post
from naksh.services.post_service import post_service
from naksh.utils import utcnow
from naksh.validation import require_string_length, sanitize_html

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def _clean_body(body: str | None) -> str | None:
    cleaned = sanitize_html(body.strip()) if isinstance(body, str) else body
    require_string_length(cleaned, "Comment body", 1, MAX_COMMENT_LENGTH, required=True)
    return cleaned


class CommentService:

    async def _visible_comment(
        self, db: AsyncSession, comment_id: uuid.UUID, resource: str = "Comment"
    ) -> Comment:
        comment = await db.get(Comment, comment_id)
        if comment is None or comment.deleted_at is not None:
            raise not_found(resource)
        return comment

    async def create_comment(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        author_id: str,
        body: str | None,
        parent_id: Optional[uuid.UUID] = None,
    ) -> Comment:
        cleaned = _clean_body(body)
        await post_service.get_live_post(db, post_id, "Cannot comment on expired post")
        if parent_id is not None:
            parent = await self._visible_comment(db, parent_id, "Parent comment")
            if parent.post_id != post_id:
                raise not_found("Parent comment")

        comment = Comment(post_id=post_id, author_id=author_id, body=cleaned, parent_id=parent_id)
        db.add(comment)
        await db.flush()
        logger.info("Comment %s added to post %s", comment.id, post_id)
        return comment

    async def _page(
        self, db: AsyncSession, conditions: list, page: int, limit: int
    ) -> Tuple[List[Comment], int]:
        result = await db.execute(
            select(Comment)
            .where(*conditions)
            .order_by(Comment.created_at.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(Comment).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def list_comments(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        page: int,
        limit: int,
        include_replies: bool = False,
    ) -> Tuple[List[Comment], int]:
        """Visible comments on a post, oldest first; top-level only unless include_replies."""
        post = await db.get(Post, post_id)
        if post is None or post.deleted_at is not None:
            raise not_found("Post")

        conditions = [Comment.post_id == post_id, Comment.deleted_at.is_(None)]
        if not include_replies:
            conditions.append(Comment.parent_id.is_(None))
        return await self._page(db, conditions, page, limit)

    async def list_replies(
        self, db: AsyncSession, comment_id: uuid.UUID, page: int, limit: int
    ) -> Tuple[List[Comment], int]:
        await self._visible_comment(db, comment_id)
        conditions = [Comment.parent_id == comment_id, Comment.deleted_at.is_(None)]
        return await self._page(db, conditions, page, limit)

    async def update_comment(
        self, db: AsyncSession, comment_id: uuid.UUID, user_id: str, body: str | None
    ) -> Comment:
        """
        Raises:
            APIError(NOT_FOUND):     comment absent or deleted
            APIError(AUTHORIZATION): caller is not the author
            APIError(GONE):          the post has expired
        """
        comment = await self._visible_comment(db, comment_id)
        if comment.author_id != user_id:
            raise authorization_error("You can only edit your own comments")
        cleaned = _clean_body(body)
        await post_service.get_live_post(db, comment.post_id, "Cannot edit comments on expired post")

        comment.body = cleaned
        comment.edited_at = utcnow()
        await db.flush()
        return comment

    async def delete_comment(self, db: AsyncSession, comment_id: uuid.UUID, user_id: str) -> Comment:
        comment = await self._visible_comment(db, comment_id)
        if comment.author_id != user_id:
            raise authorization_error("You can only delete your own comments")
        comment.deleted_at = utcnow()
        await db.flush()
        return comment


comment_service = CommentService()
