"""
Naksh Backend — Reaction Service
==================================

What:  The reaction toggle and the read-side views of a post's reactions.
How:   A user holds at most one reaction per post. The toggle is a
       three-way transition on the user's current reaction:

           none             + toggle(T) → Reacted(T)   "created"
           Reacted(T)       + toggle(T) → none         "removed"
           Reacted(U != T)  + toggle(T) → Reacted(T)   "updated"

       Two racing toggles are not serialized here; the (post_id, user_id,
       type) primary key rejects the duplicate insert and the error
       transformer reports it as CONFLICT.
Who:   reactions routes.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import not_found
from naksh.models.post import Post
from naksh.models.social import Reaction, ReactionType
from naksh.services.post_service import post_service
from naksh.validation import require_enum

logger = logging.getLogger(__name__)

REACTION_TYPES = [t.value for t in ReactionType]


@dataclass
class ToggleResult:
    action: str  # "created" | "updated" | "removed"
    reaction: Optional[Reaction] = None


def _normalize_type(reaction_type) -> str:
    return require_enum(str(reaction_type).upper(), REACTION_TYPES, "reaction type")


class ReactionService:

    async def _require_visible_post(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        post = await db.get(Post, post_id)
        if post is None or post.deleted_at is not None:
            raise not_found("Post")
        return post

    async def toggle(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        user_id: str,
        reaction_type: str,
    ) -> ToggleResult:
        """
        Apply the toggle for (post, user, type).

        Raises:
            APIError(VALIDATION): unknown reaction type
            APIError(NOT_FOUND):  post absent or soft-deleted
            APIError(GONE):       post expired
        """
        reaction_type = _normalize_type(reaction_type)
        await post_service.get_live_post(db, post_id, "Cannot react to expired post")

        result = await db.execute(
            select(Reaction).where(Reaction.post_id == post_id, Reaction.user_id == user_id)
        )
        existing = list(result.scalars().all())

        if not existing:
            reaction = Reaction(post_id=post_id, user_id=user_id, type=reaction_type)
            db.add(reaction)
            await db.flush()
            logger.info("Reaction %s added to post %s by %s", reaction_type, post_id, user_id)
            return ToggleResult("created", reaction)

        same_type = any(r.type == reaction_type for r in existing)
        # Every prior row goes, including strays left by older clients
        for row in existing:
            await db.delete(row)
        # Deletes must reach the database before the replacement insert
        await db.flush()

        if same_type:
            logger.info("Reaction %s removed from post %s by %s", reaction_type, post_id, user_id)
            return ToggleResult("removed")

        reaction = Reaction(post_id=post_id, user_id=user_id, type=reaction_type)
        db.add(reaction)
        await db.flush()
        logger.info("Reaction on post %s by %s changed to %s", post_id, user_id, reaction_type)
        return ToggleResult("updated", reaction)

    async def remove(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        user_id: str,
        reaction_type: str,
    ) -> None:
        reaction_type = _normalize_type(reaction_type)
        reaction = await db.get(Reaction, (post_id, user_id, reaction_type))
        if reaction is None:
            raise not_found("Reaction")
        await db.delete(reaction)
        await db.flush()

    async def list_for_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        page: int,
        limit: int,
        reaction_type: Optional[str] = None,
    ) -> Tuple[List[Reaction], int]:
        await self._require_visible_post(db, post_id)
        conditions = [Reaction.post_id == post_id]
        if reaction_type:
            conditions.append(Reaction.type == _normalize_type(reaction_type))

        result = await db.execute(
            select(Reaction)
            .where(*conditions)
            .order_by(Reaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(Reaction).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def group_for_post(self, db: AsyncSession, post_id: uuid.UUID) -> Dict[str, List[Reaction]]:
        """All reactions on a post keyed by type; only types present appear."""
        await self._require_visible_post(db, post_id)
        result = await db.execute(
            select(Reaction)
            .where(Reaction.post_id == post_id)
            .order_by(Reaction.created_at.desc())
        )
        grouped: Dict[str, List[Reaction]] = {}
        for reaction in result.scalars():
            grouped.setdefault(reaction.type, []).append(reaction)
        return grouped

    async def check(self, db: AsyncSession, post_id: uuid.UUID, user_id: str) -> Optional[Reaction]:
        """The user's current reaction on the post, if any."""
        result = await db.execute(
            select(Reaction)
            .where(Reaction.post_id == post_id, Reaction.user_id == user_id)
            .limit(1)
        )
        return result.scalars().first()

    async def stats(self, db: AsyncSession, post_id: uuid.UUID) -> dict:
        """{"total": n, "breakdown": {type: count}} with every type present."""
        await self._require_visible_post(db, post_id)
        result = await db.execute(
            select(Reaction.type, func.count())
            .where(Reaction.post_id == post_id)
            .group_by(Reaction.type)
        )
        breakdown = {reaction_type: 0 for reaction_type in REACTION_TYPES}
        for reaction_type, count in result.all():
            breakdown[reaction_type] = count
        return {"total": sum(breakdown.values()), "breakdown": breakdown}


reaction_service = ReactionService()
