"""
Naksh Backend — Follow Routes
===============================

What:  Explicit follow (POST) and unfollow (DELETE), plus follower lists.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import require_active_user, require_user_id
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.responses import created_response, no_content_response, paginated_response, success_response
from naksh.schemas.common import to_wire, to_wire_list
from naksh.schemas.social import FollowCreate, FollowOut
from naksh.schemas.users import UserOut
from naksh.services.follow_service import follow_service
from naksh.validation import require_pagination

router = APIRouter(prefix="/api/follows", tags=["Follows"], route_class=BoundaryRoute)


@router.post("", status_code=201, summary="Follow a user")
async def follow(
    body: FollowCreate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    relation = await follow_service.follow(db, user.id, body.followee_id)
    return created_response(to_wire(FollowOut, relation), "Now following user")


@router.delete("/{followee_id}", status_code=204, summary="Unfollow a user")
async def unfollow(
    followee_id: str,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    await follow_service.unfollow(db, user.id, followee_id)
    return no_content_response()


@router.get("/check/{followee_id}", summary="Whether the caller follows a user")
async def check_following(
    followee_id: str,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    return success_response({"isFollowing": await follow_service.is_following(db, user_id, followee_id)})


@router.get("/{user_id}/followers", summary="Users following a user")
async def followers(
    user_id: str,
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    users, total = await follow_service.followers(db, user_id, page_num, limit_num)
    return paginated_response(to_wire_list(UserOut, users), page_num, limit_num, total)


@router.get("/{user_id}/following", summary="Users a user follows")
async def following(
    user_id: str,
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    users, total = await follow_service.following(db, user_id, page_num, limit_num)
    return paginated_response(to_wire_list(UserOut, users), page_num, limit_num, total)


@router.get("/{user_id}/stats", summary="Follower and following counts")
async def follow_stats(user_id: str, db: AsyncSession = Depends(get_db_session)):
    return success_response(await follow_service.stats(db, user_id))
