"""
Naksh Backend — Moderation Service
====================================

What:  User reports (flags) and the moderator actions that resolve them.
How:   A reporter may flag a given post, comment or user once, ever; the
       (reporter_id, entity_type, entity_id) unique constraint backs the
       explicit duplicate check. Moderators may set any flag to any status,
       including back to PENDING, so decisions can be reverted.
Who:   moderation routes (report / my-reports for users, the rest for
       moderators).

Resolution:
    remove_content()  soft-deletes a post or comment and resolves its
                      PENDING flags to VALID
    suspend_user()    sets suspended_until and resolves the user's
                      PENDING flags to VALID
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.exceptions import conflict, not_found, validation_error
from naksh.models.moderation import EntityType, FlagStatus, ModerationFlag
from naksh.models.post import Comment, Post
from naksh.models.user import User
from naksh.utils import utcnow
from naksh.validation import require_enum, require_string_length, require_uuid

logger = logging.getLogger(__name__)

ENTITY_TYPES = [e.value for e in EntityType]
FLAG_STATUSES = [s.value for s in FlagStatus]
REMOVABLE_TYPES = [EntityType.POST.value, EntityType.COMMENT.value]

SORT_FIELDS = {
    "createdAt": ModerationFlag.created_at,
    "status": ModerationFlag.status,
    "entityType": ModerationFlag.entity_type,
}
STATS_PERIODS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


def _upper(value) -> str:
    return str(value).upper() if value is not None else ""


class ModerationService:

    async def _load_target(self, db: AsyncSession, entity_type: str, entity_id: str) -> Tuple[str, str]:
        """
        Resolve a report target to (normalized entity id, owner user id).

        Posts and comments must not be soft-deleted.
        """
        if entity_type == EntityType.USER.value:
            user = await db.get(User, entity_id)
            if user is None:
                raise not_found("User")
            return user.id, user.id

        target_id = require_uuid(entity_id, "entityId")
        model = Post if entity_type == EntityType.POST.value else Comment
        target = await db.get(model, target_id)
        if target is None or target.deleted_at is not None:
            raise not_found(entity_type.capitalize())
        return str(target_id), target.author_id

    async def report(
        self,
        db: AsyncSession,
        entity_type: str,
        entity_id: str,
        reporter_id: str,
        reason: Optional[str] = None,
    ) -> ModerationFlag:
        """
        File a PENDING flag.

        Raises:
            APIError(VALIDATION): unknown entity type, missing id, self-report
            APIError(NOT_FOUND):  target absent (or soft-deleted)
            APIError(CONFLICT):   this reporter already flagged this target
        """
        entity_type = require_enum(_upper(entity_type), ENTITY_TYPES, "entity type")
        require_string_length(entity_id, "Entity ID", required=True)
        normalized_id, owner_id = await self._load_target(db, entity_type, entity_id)

        if owner_id == reporter_id:
            raise validation_error("Cannot report your own content")

        existing = await db.scalar(
            select(ModerationFlag).where(
                ModerationFlag.reporter_id == reporter_id,
                ModerationFlag.entity_type == entity_type,
                ModerationFlag.entity_id == normalized_id,
            )
        )
        if existing is not None:
            raise conflict("You have already reported this content", {"flagId": str(existing.id)})

        flag = ModerationFlag(
            entity_type=entity_type,
            entity_id=normalized_id,
            reporter_id=reporter_id,
            reason=(reason.strip() or None) if reason else None,
            status=FlagStatus.PENDING.value,
        )
        db.add(flag)
        await db.flush()
        logger.info("Flag %s filed on %s %s", flag.id, entity_type, normalized_id)
        return flag

    async def get_flag(self, db: AsyncSession, flag_id: uuid.UUID) -> ModerationFlag:
        flag = await db.get(ModerationFlag, flag_id)
        if flag is None:
            raise not_found("Moderation flag")
        return flag

    async def update_status(
        self,
        db: AsyncSession,
        flag_id: uuid.UUID,
        status: str,
        reviewer_id: str,
        admin_notes: Optional[str] = None,
    ) -> ModerationFlag:
        # Any status may follow any status
        status = require_enum(_upper(status), FLAG_STATUSES, "status")
        flag = await self.get_flag(db, flag_id)
        previous = flag.status
        flag.status = status
        flag.reviewed_by = reviewer_id
        flag.updated_at = utcnow()
        if admin_notes and admin_notes.strip():
            flag.admin_notes = admin_notes.strip()
        await db.flush()
        logger.info("Flag %s: %s → %s by %s", flag_id, previous, status, reviewer_id)
        return flag

    async def list_flags(
        self,
        db: AsyncSession,
        page: int,
        limit: int,
        status: Optional[str] = None,
        entity_type: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> Tuple[List[ModerationFlag], int]:
        conditions = []
        if status:
            conditions.append(ModerationFlag.status == require_enum(_upper(status), FLAG_STATUSES, "status"))
        if entity_type:
            conditions.append(
                ModerationFlag.entity_type == require_enum(_upper(entity_type), ENTITY_TYPES, "entity type")
            )
        column = SORT_FIELDS[require_enum(sort_by, list(SORT_FIELDS), "sort field")]
        order = require_enum(str(sort_order).lower(), ["asc", "desc"], "sort order")

        result = await db.execute(
            select(ModerationFlag)
            .where(*conditions)
            .order_by(column.asc() if order == "asc" else column.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(ModerationFlag).where(*conditions))
        return list(result.scalars().all()), total or 0

    async def list_reports_by(
        self,
        db: AsyncSession,
        reporter_id: str,
        page: int,
        limit: int,
    ) -> Tuple[List[ModerationFlag], int]:
        """Flags filed by one user, newest first."""
        condition = ModerationFlag.reporter_id == reporter_id
        result = await db.execute(
            select(ModerationFlag)
            .where(condition)
            .order_by(ModerationFlag.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        total = await db.scalar(select(func.count()).select_from(ModerationFlag).where(condition))
        return list(result.scalars().all()), total or 0

    async def _resolve_pending(
        self,
        db: AsyncSession,
        entity_type: str,
        entity_id: str,
        reviewer_id: str,
        notes: str,
    ) -> int:
        result = await db.execute(
            update(ModerationFlag)
            .where(
                ModerationFlag.entity_type == entity_type,
                ModerationFlag.entity_id == entity_id,
                ModerationFlag.status == FlagStatus.PENDING.value,
            )
            .values(
                status=FlagStatus.VALID.value,
                admin_notes=notes,
                reviewed_by=reviewer_id,
                updated_at=utcnow(),
            )
        )
        return result.rowcount

    async def remove_content(
        self,
        db: AsyncSession,
        entity_type: str,
        entity_id: str,
        moderator_id: str,
        reason: Optional[str] = None,
    ) -> int:
        """Soft-delete a post or comment; returns how many PENDING flags were resolved."""
        entity_type = require_enum(_upper(entity_type), REMOVABLE_TYPES, "entity type")
        target_id = require_uuid(entity_id, "entityId")
        model = Post if entity_type == EntityType.POST.value else Comment
        target = await db.get(model, target_id)
        if target is None or target.deleted_at is not None:
            raise not_found(entity_type.capitalize())

        target.deleted_at = utcnow()
        await db.flush()
        resolved = await self._resolve_pending(
            db, entity_type, str(target_id), moderator_id, reason or "Content deleted by moderator"
        )
        logger.info("%s %s removed by moderator %s (%d flag(s) resolved)",
                    entity_type, target_id, moderator_id, resolved)
        return resolved

    async def suspend_user(
        self,
        db: AsyncSession,
        user_id: str,
        hours: int,
        moderator_id: str,
        reason: Optional[str] = None,
    ) -> User:
        if isinstance(hours, bool) or not isinstance(hours, int) or hours <= 0:
            raise validation_error("Suspension duration must be a positive number of hours")
        user = await db.get(User, user_id)
        if user is None:
            raise not_found("User")

        user.suspended_until = utcnow() + timedelta(hours=hours)
        await db.flush()
        await self._resolve_pending(
            db, EntityType.USER.value, user_id, moderator_id,
            reason or f"User suspended for {hours} hours",
        )
        logger.warning("User %s suspended for %d hours by %s", user_id, hours, moderator_id)
        return user

    async def unsuspend_user(self, db: AsyncSession, user_id: str) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise not_found("User")
        user.suspended_until = None
        await db.flush()
        logger.info("User %s unsuspended", user_id)
        return user

    async def stats(self, db: AsyncSession, period: str = "7d") -> dict:
        period = require_enum(period, list(STATS_PERIODS), "period")
        since = utcnow() - STATS_PERIODS[period]
        recent = ModerationFlag.created_at >= since

        by_status = {status: 0 for status in FLAG_STATUSES}
        result = await db.execute(
            select(ModerationFlag.status, func.count()).where(recent).group_by(ModerationFlag.status)
        )
        for status, count in result.all():
            by_status[status] = count

        by_entity = {entity_type: 0 for entity_type in ENTITY_TYPES}
        result = await db.execute(
            select(ModerationFlag.entity_type, func.count()).where(recent).group_by(ModerationFlag.entity_type)
        )
        for entity_type, count in result.all():
            by_entity[entity_type] = count

        suspended = await db.scalar(
            select(func.count()).select_from(User).where(User.suspended_until > utcnow())
        )
        return {
            "period": period,
            "totalFlags": sum(by_status.values()),
            "pendingFlags": by_status[FlagStatus.PENDING.value],
            "suspendedUsers": suspended or 0,
            "flagsByStatus": by_status,
            "flagsByEntityType": by_entity,
        }


moderation_service = ModerationService()
