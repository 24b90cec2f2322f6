"""
Naksh Backend — Post and Comment Routes
=========================================

What:  /api/posts (public feed, following feed, create, detail, edit, delete,
       comments of a post) and /api/comments (create, edit, replies, delete).
How:   Thin handlers: parse the request, call the service, wrap the result
       in an envelope. Errors are raised, never formatted here; BoundaryRoute
       and the registered handlers render them.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import require_active_user, require_user_id
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.responses import created_response, no_content_response, paginated_response, success_response
from naksh.schemas.common import to_wire, to_wire_list
from naksh.schemas.posts import CommentCreate, CommentOut, CommentUpdate, PostCreate, PostOut, PostUpdate
from naksh.services.comment_service import comment_service
from naksh.services.post_service import post_service
from naksh.validation import require_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"], route_class=BoundaryRoute)
comments_router = APIRouter(prefix="/api/comments", tags=["Comments"], route_class=BoundaryRoute)


@router.get("", summary="Feed of live public posts, newest first")
async def list_posts(
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    author_id: str | None = Query(default=None, alias="authorId"),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    posts, total = await post_service.list_posts(db, page_num, limit_num, author_id=author_id)
    return paginated_response(to_wire_list(PostOut, posts), page_num, limit_num, total)


@router.get("/feed", summary="Live posts by the caller and the people they follow")
async def following_feed(
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    posts, total = await post_service.list_feed(db, user_id, page_num, limit_num)
    return paginated_response(to_wire_list(PostOut, posts), page_num, limit_num, total)


@router.post("", status_code=201, summary="Create a post")
async def create_post(
    body: PostCreate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    post = await post_service.create_post(db, user.id, body)
    return created_response(to_wire(PostOut, post), "Post created successfully")


@router.get("/{post_id}", summary="Get a live post")
async def get_post(post_id: UUID, db: AsyncSession = Depends(get_db_session)):
    post = await post_service.get_post(db, post_id)
    return success_response(to_wire(PostOut, post))


@router.put("/{post_id}", summary="Edit your own post")
async def update_post(
    post_id: UUID,
    body: PostUpdate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    post = await post_service.update_post(db, post_id, user.id, body)
    return success_response(to_wire(PostOut, post), "Post updated successfully")


@router.delete("/{post_id}", status_code=204, summary="Delete your own post")
async def delete_post(
    post_id: UUID,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    await post_service.delete_post(db, post_id, user.id)
    return no_content_response()


@router.get("/{post_id}/comments", summary="Comments on a post, oldest first")
async def list_comments(
    post_id: UUID,
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    include_replies: bool = Query(default=False, alias="includeReplies"),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    comments, total = await comment_service.list_comments(
        db, post_id, page_num, limit_num, include_replies=include_replies
    )
    return paginated_response(to_wire_list(CommentOut, comments), page_num, limit_num, total)


@comments_router.post("", status_code=201, summary="Comment on a live post")
async def create_comment(
    body: CommentCreate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    comment = await comment_service.create_comment(
        db, body.post_id, user.id, body.body, parent_id=body.parent_id
    )
    return created_response(to_wire(CommentOut, comment), "Comment created successfully")


@comments_router.get("/{comment_id}/replies", summary="Replies to a comment, oldest first")
async def list_replies(
    comment_id: UUID,
    page: str = Query(default="1"),
    limit: str = Query(default="10"),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    replies, total = await comment_service.list_replies(db, comment_id, page_num, limit_num)
    return paginated_response(to_wire_list(CommentOut, replies), page_num, limit_num, total)


@comments_router.put("/{comment_id}", summary="Edit your own comment")
async def update_comment(
    comment_id: UUID,
    body: CommentUpdate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    comment = await comment_service.update_comment(db, comment_id, user.id, body.body)
    return success_response(to_wire(CommentOut, comment), "Comment updated successfully")


@comments_router.delete("/{comment_id}", status_code=204, summary="Delete your own comment")
async def delete_comment(
    comment_id: UUID,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    await comment_service.delete_comment(db, comment_id, user.id)
    return no_content_response()
