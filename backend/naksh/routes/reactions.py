"""
Naksh Backend — Reaction Routes
=================================

What:  POST /api/reactions toggles the caller's reaction on a post.

Toggle responses:
    created  201  data = the new reaction
    updated  200  data = the replacement reaction
    removed  200  data = null
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from naksh.database import get_db_session
from naksh.dependencies import require_active_user, require_user_id
from naksh.errors import BoundaryRoute
from naksh.models.user import User
from naksh.responses import created_response, no_content_response, paginated_response, success_response
from naksh.schemas.common import to_wire, to_wire_list
from naksh.schemas.social import ReactionOut, ReactionToggle
from naksh.services.reaction_service import reaction_service
from naksh.validation import require_pagination

router = APIRouter(prefix="/api/reactions", tags=["Reactions"], route_class=BoundaryRoute)


@router.post("", summary="Toggle a reaction on a post")
async def toggle_reaction(
    body: ReactionToggle,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await reaction_service.toggle(db, body.post_id, user.id, body.type)
    if result.action == "created":
        return created_response(to_wire(ReactionOut, result.reaction), "Reaction added")
    if result.action == "updated":
        return success_response(to_wire(ReactionOut, result.reaction), "Reaction updated")
    return success_response(None, "Reaction removed")


@router.delete("/{post_id}/{reaction_type}", status_code=204, summary="Remove a specific reaction")
async def remove_reaction(
    post_id: UUID,
    reaction_type: str,
    user: User = Depends(require_active_user),
    db: AsyncSession = Depends(get_db_session),
):
    await reaction_service.remove(db, post_id, user.id, reaction_type)
    return no_content_response()


@router.get("/post/{post_id}", summary="Reactions on a post")
async def list_reactions(
    post_id: UUID,
    page: str = Query(default="1"),
    limit: str = Query(default="50"),
    reaction_type: str | None = Query(default=None, alias="type"),
    grouped: bool = Query(default=False),
    db: AsyncSession = Depends(get_db_session),
):
    if grouped:
        groups = await reaction_service.group_for_post(db, post_id)
        return success_response({
            reaction_type: {"count": len(reactions), "reactions": to_wire_list(ReactionOut, reactions)}
            for reaction_type, reactions in groups.items()
        })

    page_num, limit_num = require_pagination(page, limit)
    reactions, total = await reaction_service.list_for_post(
        db, post_id, page_num, limit_num, reaction_type=reaction_type
    )
    return paginated_response(to_wire_list(ReactionOut, reactions), page_num, limit_num, total)


@router.get("/post/{post_id}/check", summary="The caller's reaction on a post")
async def check_reaction(
    post_id: UUID,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db_session),
):
    reaction = await reaction_service.check(db, post_id, user_id)
    return success_response({
        "hasReacted": reaction is not None,
        "reaction": to_wire(ReactionOut, reaction) if reaction else None,
    })


@router.get("/post/{post_id}/stats", summary="Reaction counts by type")
async def reaction_stats(post_id: UUID, db: AsyncSession = Depends(get_db_session)):
    return success_response(await reaction_service.stats(db, post_id))
