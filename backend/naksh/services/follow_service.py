"""
Naksh Backend — Follow Service
================================

What:  Explicit follow / unfollow between users, plus follower listings.
How:   Unlike reactions there is no toggle: following twice is a CONFLICT
       and unfollowing someone you do not follow is NOT_FOUND.
"""

import logging
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import conflict, not_found, validation_error
from naksh.models.social import Follow
from naksh.models.user import User

logger = logging.getLogger(__name__)


class FollowService:

    async def follow(self, db: AsyncSession, follower_id: str, followee_id: str) -> Follow:
        # Checked before any lookup: self-follow is invalid whether or not the user exists
        if follower_id == followee_id:
            raise validation_error("You cannot follow yourself")

        for user_id in (follower_id, followee_id):
            if await db.get(User, user_id) is None:
                raise not_found("User")

        if await db.get(Follow, (follower_id, followee_id)) is not None:
            raise conflict("Already following this user")

        follow = Follow(follower_id=follower_id, followee_id=followee_id)
        db.add(follow)
        await db.flush()
        logger.info("%s now follows %s", follower_id, followee_id)
        return follow

    async def unfollow(self, db: AsyncSession, follower_id: str, followee_id: str) -> None:
        follow = await db.get(Follow, (follower_id, followee_id))
        if follow is None:
            raise not_found("Follow relationship")
        await db.delete(follow)
        await db.flush()
        logger.info("%s unfollowed %s", follower_id, followee_id)

    async def is_following(self, db: AsyncSession, follower_id: str, followee_id: str) -> bool:
        return await db.get(Follow, (follower_id, followee_id)) is not None

    async def _page(
        self,
        db: AsyncSession,
        user_id: str,
        join_on,
        where,
        page: int,
        limit: int,
    ) -> Tuple[List[User], int]:
        if await db.get(User, user_id) is None:
            raise not_found("User")
        result = await db.execute(
            select(User)
            .join(Follow, join_on)
            .where(where)
            .order_by(Follow.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(Follow).where(where))
        return list(result.scalars().all()), total or 0

    async def followers(self, db: AsyncSession, user_id: str, page: int, limit: int) -> Tuple[List[User], int]:
        """Users following `user_id`, most recent first."""
        return await self._page(
            db, user_id, Follow.follower_id == User.id, Follow.followee_id == user_id, page, limit
        )

    async def following(self, db: AsyncSession, user_id: str, page: int, limit: int) -> Tuple[List[User], int]:
        """Users `user_id` follows, most recent first."""
        return await self._page(
            db, user_id, Follow.followee_id == User.id, Follow.follower_id == user_id, page, limit
        )

    async def stats(self, db: AsyncSession, user_id: str) -> dict:
        if await db.get(User, user_id) is None:
            raise not_found("User")
        followers = await db.scalar(
            select(func.count()).select_from(Follow).where(Follow.followee_id == user_id)
        )
        following = await db.scalar(
            select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
        )
        return {"followers": followers or 0, "following": following or 0}


follow_service = FollowService()
