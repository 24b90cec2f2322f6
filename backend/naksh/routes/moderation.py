"""
Naksh Backend — Moderation Routes
===================================

What:  Reporting for every active user; flag review, content removal,
       suspensions and statistics for moderators.
Who:   /report and /my-reports: require_active_user.
       Everything else: require_moderator.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import require_active_user, require_moderator
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.responses import created_response, paginated_response, success_response
from naksh.schemas.common import to_wire, to_wire_list
from naksh.schemas.moderation import FlagCreate, FlagOut, FlagStatusUpdate, SuspendRequest
from naksh.schemas.users import UserOut
from naksh.services.moderation_service import moderation_service
from naksh.validation import require_pagination

router = APIRouter(prefix="/api/moderation", tags=["Moderation"], route_class=BoundaryRoute)


@router.post("/report", status_code=201, summary="Report a post, comment or user")
async def report(
    body: FlagCreate,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    flag = await moderation_service.report(db, body.entity_type, body.entity_id, user.id, body.reason)
    return created_response(to_wire(FlagOut, flag), "Content reported successfully")


@router.get("/my-reports", summary="Reports filed by the caller")
async def my_reports(
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    flags, total = await moderation_service.list_reports_by(db, user.id, page_num, limit_num)
    return paginated_response(to_wire_list(FlagOut, flags), page_num, limit_num, total)


@router.get("/flags", summary="Review queue")
async def list_flags(
    page: str = Query(default="1"),
    limit: str = Query(default="20"),
    status: str | None = Query(default=None),
    entity_type: str | None = Query(default=None, alias="entityType"),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db_session),
):
    page_num, limit_num = require_pagination(page, limit)
    flags, total = await moderation_service.list_flags(
        db, page_num, limit_num,
        status=status, entity_type=entity_type, sort_by=sort_by, sort_order=sort_order,
    )
    return paginated_response(to_wire_list(FlagOut, flags), page_num, limit_num, total)


@router.get("/flags/{flag_id}", summary="One flag")
async def get_flag(
    flag_id: UUID,
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db_session),
):
    return success_response(to_wire(FlagOut, await moderation_service.get_flag(db, flag_id)))


@router.put("/flags/{flag_id}", summary="Set a flag's status")
async def update_flag(
    flag_id: UUID,
    body: FlagStatusUpdate,
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db_session),
):
    flag = await moderation_service.update_status(db, flag_id, body.status, moderator.id, body.admin_notes)
    return success_response(to_wire(FlagOut, flag), "Moderation flag updated successfully")


@router.delete("/content/{entity_type}/{entity_id}", summary="Remove a post or comment")
async def remove_content(
    entity_type: str,
    entity_id: str,
    reason: str | None = Query(default=None),
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db_session),
):
    resolved = await moderation_service.remove_content(db, entity_type, entity_id, moderator.id, reason)
    return success_response(
        {"entityType": entity_type.upper(), "entityId": entity_id, "resolvedFlags": resolved},
        f"{entity_type.lower()} deleted successfully",
    )


@router.post("/users/{user_id}/suspend", summary="Suspend a user")
async def suspend_user(
    user_id: str,
    body: SuspendRequest,
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db_session),
):
    user = await moderation_service.suspend_user(db, user_id, body.hours, moderator.id, body.reason)
    return success_response(to_wire(UserOut, user), "User suspended successfully")


@router.post("/users/{user_id}/unsuspend", summary="Lift a suspension")
async def unsuspend_user(
    user_id: str,
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db_session),
):
    user = await moderation_service.unsuspend_user(db, user_id)
    return success_response(to_wire(UserOut, user), "User unsuspended successfully")


@router.get("/stats", summary="Flag counts for a period (24h, 7d, 30d)")
async def moderation_stats(
    period: str = Query(default="7d"),
    moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_db_session),
):
    return success_response(await moderation_service.stats(db, period))
